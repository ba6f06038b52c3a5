"""
IFExpr Logging - package-wide logger configuration

Library modules call ``get_logger("ifexpr.<module>")`` and never attach
handlers themselves. Entry points (the CLI) call ``configure_logging`` once.
"""

from typing import IO, Optional, Union
import logging
import sys


_PKG_LOGGER_NAME = "ifexpr"
_DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: Optional[logging.Handler] = None


def parse_level(level: Union[int, str, None], default: int = logging.WARNING) -> int:
    """Accept a level number, a numeric string or a level name"""
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    return default


def configure_logging(
    level: Union[int, str, None] = None,
    fmt: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """
    Attach a single StreamHandler to the package logger.

    Calling again replaces the previous handler, so tests and repeated CLI
    invocations in one process don't duplicate output.
    """
    global _handler

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler) or h is _handler:
            logger.removeHandler(h)

    _handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    _handler.setFormatter(logging.Formatter(fmt or _DEFAULT_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(parse_level(level))
    # Avoid double emission via the root logger.
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger, keeping the package silent until configured"""
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
