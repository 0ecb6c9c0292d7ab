# system.py
# External collaborators: process execution, binary lookup, HTTP fetch.
#
# This is the single place where subprocess and httpx are called. Probes and
# remediations never reach for them directly, so tests patch one module.

import logging
import os
import shutil
import subprocess
import time
from typing import Optional, Sequence

import httpx

from dotboot.models import CommandResult
from dotboot.runner import RemediationFailed

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 4000
_USER_AGENT = "dotboot"


def locate(binary: str, search_path: Optional[str] = None) -> Optional[str]:
    """Absolute path of `binary` on `search_path` (defaults to $PATH), or None."""
    return shutil.which(binary, path=search_path)


def run(
    cmd: Sequence[str],
    *,
    timeout: Optional[float] = None,
    env: Optional[dict[str, str]] = None,
    cwd: Optional[str] = None,
    input: Optional[str] = None,
) -> CommandResult:
    """
    Run `cmd` and capture its output.

    Never raises for process-level failures. A missing executable, a timeout
    or a non-zero exit all come back as CommandResult(ok=False, ...).
    """
    merged_env = None
    if env:
        merged_env = os.environ.copy()
        merged_env.update(env)

    logger.debug("run: %s", " ".join(cmd))
    try:
        proc = subprocess.run(
            list(cmd),
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            env=merged_env,
            cwd=cwd,
            input=input,
        )
    except FileNotFoundError:
        return CommandResult(ok=False, error=f"{cmd[0]}: command not found")
    except subprocess.TimeoutExpired:
        return CommandResult(ok=False, error=f"{cmd[0]}: timed out after {timeout}s")
    except OSError as exc:
        return CommandResult(ok=False, error=f"{cmd[0]}: {exc}")

    result = CommandResult(
        ok=proc.returncode == 0,
        returncode=proc.returncode,
        stdout=(proc.stdout or "")[-_OUTPUT_TAIL:],
        stderr=(proc.stderr or "")[-_OUTPUT_TAIL:],
    )
    if not result.ok:
        logger.debug("run failed: %s -> %s", cmd[0], result.diagnostic)
    return result


def fetch(url: str, *, timeout: float = 30.0, retries: int = 3, backoff: float = 1.0) -> bytes:
    """
    Download `url` into memory, following redirects.

    Transport errors and 5xx responses are retried up to `retries` attempts in
    total with linear backoff. 4xx responses fail immediately. Raises
    RemediationFailed with the last diagnostic once attempts are exhausted.
    """
    attempts = max(1, retries)
    last_error = ""
    for attempt in range(1, attempts + 1):
        logger.info("fetch %s (attempt %d/%d)", url, attempt, attempts)
        try:
            response = httpx.get(
                url,
                timeout=timeout,
                follow_redirects=True,
                headers={"User-Agent": _USER_AGENT},
            )
        except httpx.HTTPError as exc:
            last_error = f"GET {url} failed: {exc}"
        else:
            if response.status_code < 400:
                return response.content
            last_error = f"GET {url} → {response.status_code}"
            if response.status_code < 500:
                break
        logger.warning("%s", last_error)
        if attempt < attempts:
            time.sleep(backoff * attempt)

    raise RemediationFailed(last_error)
