"""Pluggable logger used by the library, installed once per process."""

from __future__ import annotations

import abc
import enum
import inspect
from typing import Any

LOG_TAG = "AttestatationClientLib"


class LogLevel(enum.IntEnum):
    """Severity of a log message."""

    ERROR = 0
    WARN = 1
    INFO = 2
    DEBUG = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


class AttestationLogger(abc.ABC):
    """Receiver of the library's log messages."""

    @abc.abstractmethod
    def log(
        self,
        tag: str,
        level: LogLevel,
        function: str,
        line: int,
        fmt: str,
        *args: Any,
    ) -> None:
        """Handle one printf-style message with its arguments."""


_logger: AttestationLogger | None = None


def set_logger(logger: AttestationLogger) -> None:
    """Install the logger; the first one installed stays until reset."""
    global _logger
    if _logger is None:
        _logger = logger


def get_logger() -> AttestationLogger | None:
    """Return the installed logger, if any."""
    return _logger


def reset_logger() -> None:
    """Remove the installed logger."""
    global _logger
    _logger = None


def _emit(level: LogLevel, fmt: str, args: tuple[Any, ...]) -> None:
    logger = _logger
    if logger is None:
        return
    function, line = "<unknown>", 0
    frame = inspect.currentframe()
    try:
        caller = frame.f_back.f_back if frame and frame.f_back else None
        if caller is not None:
            function, line = caller.f_code.co_name, caller.f_lineno
    finally:
        del frame
    logger.log(LOG_TAG, level, function, line, fmt, *args)


def log_error(fmt: str, *args: Any) -> None:
    """Log at error level through the installed logger."""
    _emit(LogLevel.ERROR, fmt, args)


def log_warn(fmt: str, *args: Any) -> None:
    """Log at warning level through the installed logger."""
    _emit(LogLevel.WARN, fmt, args)


def log_info(fmt: str, *args: Any) -> None:
    """Log at info level through the installed logger."""
    _emit(LogLevel.INFO, fmt, args)


def log_debug(fmt: str, *args: Any) -> None:
    """Log at debug level through the installed logger."""
    _emit(LogLevel.DEBUG, fmt, args)