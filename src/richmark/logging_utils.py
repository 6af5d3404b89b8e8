"""Logging setup for the richmark command line and embedding hosts.

Library modules only create module loggers under the ``richmark`` namespace.
Handlers are attached here, once, by whoever owns the process.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "richmark"

PLAIN_FORMAT = "%(levelname)s: %(message)s"
TRACE_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
TRACE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(log_level: int | str) -> int:
    """Turn a level name such as ``"warning"`` into its numeric value, defaulting to WARNING."""
    if isinstance(log_level, int):
        return log_level
    level = logging.getLevelName(str(log_level).upper())
    return level if isinstance(level, int) else logging.WARNING


def _console_handler(use_rich: bool) -> logging.Handler:
    if use_rich:
        from rich.console import Console
        from rich.logging import RichHandler

        return RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    return logging.StreamHandler(sys.stderr)


def configure_logging(
    log_level: int | str,
    log_file: Optional[str] = None,
    trace_mode: bool = False,
    use_rich: bool = False,
) -> logging.Logger:
    """Attach console (and optionally file) handlers to the ``richmark`` logger.

    Parameters
    ----------
    log_level : int | str
        Numeric level or level name.
    log_file : str, optional
        Append log records to this file as well.
    trace_mode : bool, default False
        Force DEBUG and include timestamps and logger names, so transaction
        commits and rejected commands can be followed.
    use_rich : bool, default False
        Render console records with :class:`rich.logging.RichHandler`.

    Returns
    -------
    logging.Logger
        The package logger.

    """
    level = logging.DEBUG if trace_mode else resolve_level(log_level)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if trace_mode:
        formatter = logging.Formatter(TRACE_FORMAT, datefmt=TRACE_DATE_FORMAT)
    else:
        formatter = logging.Formatter(PLAIN_FORMAT)

    console = _console_handler(use_rich)
    console.setLevel(level)
    if not use_rich:
        console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not open log file %s: %s", log_file, exc)
        else:
            file_handler.setLevel(level)
            file_handler.setFormatter(logging.Formatter(TRACE_FORMAT, datefmt=TRACE_DATE_FORMAT))
            logger.addHandler(file_handler)
            logger.debug("Logging to file: %s", log_file)

    return logger
