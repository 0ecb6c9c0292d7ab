# logging_config.py
# Central logging setup, called once by the CLI.
#
# Every module does `logger = logging.getLogger(__name__)` and inherits this.
# Console logs go to stderr through rich so they never interleave with the
# progress lines the Reporter writes to stdout.
#
# Level precedence: CLI flag > DOTBOOT_LOG_LEVEL > WARNING.

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    numeric_level = _parse_level(level)

    console = RichHandler(
        console=Console(stderr=True),
        show_path=numeric_level <= logging.DEBUG,
        rich_tracebacks=True,
    )
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter("%(message)s", datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = numeric_level

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        effective_level = logging.DEBUG

    root.setLevel(effective_level)

    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def _parse_level(level: Optional[str]) -> int:
    """Convert a level name to its numeric constant, defaulting to WARNING."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
