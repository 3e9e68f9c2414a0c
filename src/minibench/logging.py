"""Logging setup for minibench.

Progress lines ("Running bench_x", "Took 1.234ms on average") are plain
messages on stderr; failures carry a lowercase level tag so they stand
out from progress.  In JSON mode stdout belongs to the result document,
so the console only shows problems.  An optional log file always records
DEBUG output, including per-iteration samples and the tracebacks of
failed benchmark files.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "minibench"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class _ConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"{record.levelname.lower()}: {message}"
        return message


def console_level(*, verbose: bool = False, quiet: bool = False, json_output: bool = False) -> int:
    """Console log level for the given CLI flags.

    JSON output wins over *verbose*: only warnings and errors reach the
    console.  Otherwise *verbose* wins over *quiet*.
    """
    if json_output or (quiet and not verbose):
        return logging.WARNING
    if verbose:
        return logging.DEBUG
    return logging.INFO


def setup_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    json_output: bool = False,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure and return the minibench logger.

    Args:
        verbose: Show per-iteration timings on the console.
        quiet: Only show warnings and errors on the console.
        json_output: Results go to stdout as JSON; keep progress off the console.
        log_file: If provided, also log everything at DEBUG to this path.

    Returns:
        The configured minibench logger.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Calling twice (tests, repeated CLI invocations) must not stack handlers.
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level(verbose=verbose, quiet=quiet, json_output=json_output))
    console.setFormatter(_ConsoleFormatter("%(message)s"))
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(fh)

    return logger
