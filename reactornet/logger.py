"""A tiny process-wide logger writing ``[LEVEL]time : message`` lines to stdout."""

from __future__ import annotations

import sys
import threading
from enum import IntEnum

from reactornet.timestamp import Timestamp

_MAX_MESSAGE = 1023


class LogLevel(IntEnum):
    """Severity of a log line."""

    INFO = 0
    ERROR = 1
    FATAL = 2
    DEBUG = 3


class Logger:
    """Singleton logger; get it with :meth:`Logger.instance`."""

    _instance: Logger | None = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self.level = LogLevel.INFO
        self.debug_enabled = False
        self._write_lock = threading.Lock()

    @classmethod
    def instance(cls) -> Logger:
        """Return the one shared logger."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def set_log_level(self, level: LogLevel | int) -> None:
        """Set the level used for the next lines."""
        self.level = LogLevel(level)

    def log(self, msg: str) -> None:
        """Write one line tagged with the current level and time."""
        line = f"[{self.level.name}]{Timestamp.now().to_string()} : {msg}\n"
        with self._write_lock:
            sys.stdout.write(line)
            sys.stdout.flush()


_emit_lock = threading.Lock()


def _emit(level: LogLevel, fmt: str, args: tuple) -> None:
    message = (fmt % args if args else fmt)[:_MAX_MESSAGE]
    logger = Logger.instance()
    with _emit_lock:
        logger.set_log_level(level)
        logger.log(message)


def log_info(fmt: str, *args) -> None:
    """Log a printf-style message at INFO level."""
    _emit(LogLevel.INFO, fmt, args)


def log_error(fmt: str, *args) -> None:
    """Log a printf-style message at ERROR level."""
    _emit(LogLevel.ERROR, fmt, args)


def log_fatal(fmt: str, *args) -> None:
    """Log at FATAL level and end the process with status -1."""
    _emit(LogLevel.FATAL, fmt, args)
    raise SystemExit(-1)


def log_debug(fmt: str, *args) -> None:
    """Log at DEBUG level, only when the logger has debugging enabled."""
    if Logger.instance().debug_enabled:
        _emit(LogLevel.DEBUG, fmt, args)