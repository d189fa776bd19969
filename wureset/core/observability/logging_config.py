"""
Process logging for the wureset CLI.

``main.py`` calls ``setup_logging`` once; modules just use
``logging.getLogger(__name__)``. The console level comes from the CLI
flags, else ``WURESET_LOG_LEVEL``, else INFO. A second, optional sink
is ``WURESET_LOG_FILE``.

Each remediation run additionally gets its own append-only file
(``<log_dir>/<run_id>.log``), hooked in with ``attach_run_log`` for the
duration of the run.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Console format by verbosity; the first entry whose threshold is at or
# above the configured level wins.
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d: %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s %(levelname)-5s %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(levelname)s %(message)s", None),
)

_FILE_FORMAT = logging.Formatter(
    "%(asctime)s %(levelname)-5s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

_NOISY_LOGGERS = ("asyncio",)


def _console_formatter(level: int) -> logging.Formatter:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return logging.Formatter(fmt, datefmt=datefmt)
    return logging.Formatter(_CONSOLE_FORMATS[-1][1])


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """(Re)configure the root logger.

    Existing root handlers are dropped. The root level ends up at the
    lower of the console and file levels so the file can be more
    detailed than the terminal.
    """
    console_level = _parse_level(level)
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))
    handlers.append(console)

    if log_file:
        file_level = _parse_level(log_file_level or level)
        extra = logging.FileHandler(log_file, encoding="utf-8")
        extra.setLevel(file_level)
        extra.setFormatter(_FILE_FORMAT)
        handlers.append(extra)

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def attach_run_log(path: Path, level: str = "INFO") -> logging.Handler:
    """Start copying log records into the run's own file.

    Records at INFO and above always reach this file, even under
    ``--quiet``. Pair with ``detach_run_log``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    run_level = min(_parse_level(level), logging.INFO)

    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(run_level)
    handler.setFormatter(_FILE_FORMAT)

    root = logging.getLogger()
    root.addHandler(handler)
    if root.level == logging.NOTSET or root.level > run_level:
        root.setLevel(run_level)
    return handler


def detach_run_log(handler: logging.Handler) -> None:
    logging.getLogger().removeHandler(handler)
    handler.close()


def _parse_level(level: str | None) -> int:
    """Level name to number; anything unrecognised means INFO."""
    value = getattr(logging, (level or "").upper(), None)
    return value if isinstance(value, int) else logging.INFO
