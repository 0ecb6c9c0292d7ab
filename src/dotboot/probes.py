# probes.py
# Read-only condition checks.
#
# Every factory here returns a zero-argument callable producing a ProbeResult.
# Probes never write. Anything that prevents the check itself from running
# resolves to INDETERMINATE rather than raising.

import re
from pathlib import Path
from typing import Callable, Optional, Sequence

from dotboot import system
from dotboot.models import ProbeResult, ProbeState
from dotboot.runner import ProbeIndeterminate

Probe = Callable[[], ProbeResult]

_VERSION_RE = r"(\d+\.\d+(?:\.\d+)?)"


def _version_key(version: str) -> tuple[int, ...]:
    return tuple(int(part) for part in re.findall(r"\d+", version))


def _satisfied(detail: str = "") -> ProbeResult:
    return ProbeResult(state=ProbeState.SATISFIED, detail=detail)


def _unsatisfied(detail: str = "") -> ProbeResult:
    return ProbeResult(state=ProbeState.UNSATISFIED, detail=detail)


def _indeterminate(detail: str = "") -> ProbeResult:
    return ProbeResult(state=ProbeState.INDETERMINATE, detail=detail)


def _query_version(
    cmd: Sequence[str],
    pattern: str,
    search_path: Optional[str],
    timeout: float,
) -> str:
    """Run a version command and extract the first regex group."""
    env = {"PATH": search_path} if search_path else None
    result = system.run(cmd, timeout=timeout, env=env)
    if not result.ok:
        raise ProbeIndeterminate(f"{' '.join(cmd)}: {result.diagnostic}")
    match = re.search(pattern, result.stdout + result.stderr)
    if not match:
        raise ProbeIndeterminate(f"{' '.join(cmd)}: unrecognised version output")
    return match.group(1)


def binary_on_path(
    binary: str,
    *,
    search_path: Optional[str] = None,
    version_args: Optional[Sequence[str]] = None,
    version_pattern: str = _VERSION_RE,
    min_version: Optional[str] = None,
    timeout: float = 15.0,
) -> Probe:
    """
    Satisfied when `binary` resolves on `search_path`.

    With `version_args` the binary is also asked for its version, which is
    reported as detail. A `min_version` turns an older version into
    UNSATISFIED. A version query that exits non-zero or prints nothing
    recognisable makes the result INDETERMINATE, since the binary is present
    but not known to work.
    """

    def probe() -> ProbeResult:
        location = system.locate(binary, search_path)
        if location is None:
            return _unsatisfied(f"{binary} not found on PATH")
        if not version_args:
            return _satisfied(location)

        try:
            version = _query_version(
                [location, *version_args], version_pattern, search_path, timeout
            )
        except ProbeIndeterminate as exc:
            return _indeterminate(str(exc))

        if min_version and _version_key(version) < _version_key(min_version):
            return _unsatisfied(f"{binary} {version} < {min_version}")
        return _satisfied(f"{binary} {version}")

    return probe


def file_contains_line(path: Path, line: str) -> Probe:
    """
    Satisfied when `path` holds a line exactly equal to `line`.

    Matching is literal and whole-line (trailing newline ignored). An
    equivalent line with different spacing or quoting does not count.
    """

    def probe() -> ProbeResult:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return _unsatisfied(f"{path} not found")
        except OSError as exc:
            return _indeterminate(f"{path}: {exc}")
        if line in text.splitlines():
            return _satisfied(str(path))
        return _unsatisfied(f"line missing from {path}")

    return probe


def path_exists(path: Path, kind: str = "any") -> Probe:
    """Satisfied when `path` exists; `kind` may be 'file', 'dir' or 'any'."""
    checks = {"file": Path.is_file, "dir": Path.is_dir, "any": Path.exists}
    if kind not in checks:
        raise ValueError(f"Unknown path kind: {kind!r}")
    check = checks[kind]

    def probe() -> ProbeResult:
        if check(path):
            return _satisfied(str(path))
        return _unsatisfied(f"{path} missing")

    return probe


def same_content(src: Path, dest: Path) -> Probe:
    """Satisfied when `dest` exists and is byte-identical to `src`."""

    def probe() -> ProbeResult:
        if not dest.is_file():
            return _unsatisfied(f"{dest} missing")
        try:
            matches = src.read_bytes() == dest.read_bytes()
        except OSError as exc:
            return _indeterminate(str(exc))
        if matches:
            return _satisfied(str(dest))
        return _unsatisfied(f"{dest} differs from {src}")

    return probe


def command_succeeds(
    cmd: Sequence[str],
    *,
    expect: Optional[str] = None,
    detail_pattern: Optional[str] = None,
    search_path: Optional[str] = None,
    timeout: float = 30.0,
) -> Probe:
    """
    Satisfied when `cmd` exits 0 (and its stdout matches `expect`, if given).

    A command that cannot be started at all is INDETERMINATE; a command that
    runs and exits non-zero is UNSATISFIED.
    """

    def probe() -> ProbeResult:
        env = {"PATH": search_path} if search_path else None
        result = system.run(cmd, timeout=timeout, env=env)
        if result.error:
            return _indeterminate(result.error)
        if not result.ok:
            return _unsatisfied(result.diagnostic)
        if expect is not None and not re.search(expect, result.stdout):
            return _unsatisfied(f"output did not match {expect!r}")
        output = result.stdout.strip()
        if detail_pattern:
            match = re.search(detail_pattern, output)
            return _satisfied(match.group(1) if match else "")
        return _satisfied(output.splitlines()[0] if output else "")

    return probe


def python_module(
    module: str,
    *,
    python: str = "python3",
    search_path: Optional[str] = None,
    timeout: float = 60.0,
) -> Probe:
    """Satisfied when `module` imports under `python`; reports its version."""
    script = (
        f"import {module} as m; "
        "print(getattr(m, '__version__', 'installed'))"
    )
    check = command_succeeds(
        [python, "-c", script], search_path=search_path, timeout=timeout
    )

    def probe() -> ProbeResult:
        result = check()
        if result.state is ProbeState.UNSATISFIED:
            return _unsatisfied(f"{module} not importable")
        return result

    return probe


def min_memory_gb(minimum: int, meminfo: Path = Path("/proc/meminfo")) -> Probe:
    """Satisfied when MemTotal is at least `minimum` GiB (rounded down)."""

    def probe() -> ProbeResult:
        try:
            text = meminfo.read_text()
        except OSError as exc:
            return _indeterminate(f"{meminfo}: {exc}")
        match = re.search(r"^MemTotal:\s+(\d+)\s+kB", text, re.MULTILINE)
        if not match:
            return _indeterminate(f"MemTotal missing from {meminfo}")
        total_gb = int(match.group(1)) // (1024 * 1024)
        if total_gb >= minimum:
            return _satisfied(f"{total_gb}GB")
        return _unsatisfied(f"{total_gb}GB < {minimum}GB")

    return probe


def all_of(*probes: Probe) -> Probe:
    """Combine probes; the worst state wins and details are joined."""
    rank = {
        ProbeState.SATISFIED: 0,
        ProbeState.UNSATISFIED: 1,
        ProbeState.INDETERMINATE: 2,
    }

    def probe() -> ProbeResult:
        results = [p() for p in probes]
        worst = max(results, key=lambda r: rank[r.state]).state
        details = "; ".join(r.detail for r in results if r.state is worst and r.detail)
        return ProbeResult(state=worst, detail=details)

    return probe
