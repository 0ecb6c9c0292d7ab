# remediations.py
# Fix actions. Each factory returns a zero-argument callable producing a
# RemediationResult. The runner only calls these after a probe reported the
# condition unsatisfied.
#
# Every action must converge when retried after a partial run: directories use
# exist_ok, downloads land in a temp file and are renamed into place.

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional, Sequence

from dotboot import system
from dotboot.models import RemediationResult
from dotboot.runner import RemediationFailed

logger = logging.getLogger(__name__)

Remediation = Callable[[], RemediationResult]


def _ok(detail: str) -> RemediationResult:
    return RemediationResult(ok=True, detail=detail)


def _failed(detail: str) -> RemediationResult:
    return RemediationResult(ok=False, detail=detail)


def _missing_final_newline(path: Path) -> bool:
    """True when `path` has content whose last byte is not a newline."""
    try:
        with open(path, "rb") as fh:
            fh.seek(0, os.SEEK_END)
            if fh.tell() == 0:
                return False
            fh.seek(-1, os.SEEK_END)
            return fh.read(1) != b"\n"
    except FileNotFoundError:
        return False


def append_line(
    path: Path,
    line: str,
    *,
    header: Optional[str] = None,
    create: bool = False,
) -> Remediation:
    """
    Append `line` (preceded by a `# header` comment) to `path`.

    Pairs with probes.file_contains_line, which matches exact text only. A
    line that means the same thing but is spelled differently is not
    detected, so this will append a second, textually distinct copy.
    """

    def remediate() -> RemediationResult:
        if not path.exists() and not create:
            return _failed(f"{path} not found, skipping")
        block = f"\n# {header}\n{line}\n" if header else f"{line}\n"
        if _missing_final_newline(path):
            block = "\n" + block
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(block)
        logger.info("appended to %s: %s", path, line)
        return _ok(f"added line to {path}")

    return remediate


def write_file(path: Path, content: str, *, mode: Optional[int] = None) -> Remediation:
    """Write `content` to `path` (overwriting), optionally chmod-ing it."""

    def remediate() -> RemediationResult:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        if mode is not None:
            path.chmod(mode)
        return _ok(f"wrote {len(content)} bytes to {path}")

    return remediate


def copy_file(src: Path, dest: Path) -> Remediation:
    def remediate() -> RemediationResult:
        if not src.is_file():
            return _failed(f"source not found at {src}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, dest)
        return _ok(f"copied {src} to {dest}")

    return remediate


def make_directories(*paths: Path) -> Remediation:
    def remediate() -> RemediationResult:
        for path in paths:
            path.mkdir(parents=True, exist_ok=True)
        return _ok(f"created {len(paths)} director{'y' if len(paths) == 1 else 'ies'}")

    return remediate


def run_command(
    cmd: Sequence[str],
    *,
    timeout: Optional[float] = None,
    env: Optional[dict[str, str]] = None,
    cwd: Optional[Path] = None,
) -> Remediation:
    """Run `cmd`; a non-zero exit fails with the command's own diagnostic."""

    def remediate() -> RemediationResult:
        result = system.run(cmd, timeout=timeout, env=env, cwd=str(cwd) if cwd else None)
        if not result.ok:
            return _failed(result.diagnostic)
        return _ok(f"ran {cmd[0]}")

    return remediate


def download_file(
    url: str,
    dest: Path,
    *,
    mode: int = 0o644,
    timeout: float = 30.0,
    retries: int = 3,
) -> Remediation:
    """
    Fetch `url` to `dest` atomically.

    The body is written to a sibling temp file, chmod-ed, then renamed over
    `dest`, so an interrupted download never leaves a truncated file behind.
    A failed fetch comes back as a failed result carrying the HTTP diagnostic.
    """

    def remediate() -> RemediationResult:
        try:
            body = system.fetch(url, timeout=timeout, retries=retries)
        except RemediationFailed as exc:
            return _failed(str(exc))
        dest.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(body)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, dest)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return _ok(f"downloaded {len(body)} bytes to {dest}")

    return remediate


def fetch_and_run(
    url: str,
    *,
    interpreter: Sequence[str] = ("sh",),
    args: Sequence[str] = (),
    timeout: Optional[float] = None,
    env: Optional[dict[str, str]] = None,
    http_timeout: float = 30.0,
    retries: int = 3,
) -> Remediation:
    """
    Download an installer script and execute it.

    Equivalent to `curl -fsSL <url> | <interpreter> -s -- <args>`, except the
    script is saved to a temp file first and the download is retried.
    """

    def remediate() -> RemediationResult:
        try:
            script = system.fetch(url, timeout=http_timeout, retries=retries)
        except RemediationFailed as exc:
            return _failed(str(exc))
        with tempfile.TemporaryDirectory(prefix="dotboot-") as workdir:
            script_path = Path(workdir) / "install.sh"
            script_path.write_bytes(script)
            result = system.run(
                [*interpreter, str(script_path), *args], timeout=timeout, env=env, cwd=workdir
            )
        if not result.ok:
            return _failed(f"installer from {url} failed: {result.diagnostic}")
        return _ok(f"ran installer from {url}")

    return remediate


def chain(*remediations: Remediation) -> Remediation:
    """Run remediations in order, stopping at the first failure."""

    def remediate() -> RemediationResult:
        details = []
        for action in remediations:
            result = action()
            if not result.ok:
                return result
            details.append(result.detail)
        return _ok("; ".join(d for d in details if d))

    return remediate
