"""Logging utilities for codeask commands and pipeline traces."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Protocol

_LOGGER_NAME = "codeask"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the codeask hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure root logger for codeask with console output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when CLI is invoked multiple times.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("[codeask] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


class TraceLogger(Protocol):
    """Sink for intermediate pipeline artifacts (relevant files, per-file answers)."""

    def log_detail(self, text: str) -> None:
        ...


class NullTraceLogger:
    """Trace sink that discards everything."""

    def log_detail(self, text: str) -> None:
        return None


class FileTraceLogger:
    """Appends trace lines to a text file; write failures are reported, never raised."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()
        self._logger = get_logger("trace")

    def log_detail(self, text: str) -> None:
        with self._lock:
            try:
                with self.path.open("a", encoding="utf-8", errors="replace") as handle:
                    handle.write(f"{text}\n")
            except (OSError, ValueError) as exc:
                self._logger.warning("Failed to write trace log %s: %s", self.path, exc)


class GuardedTraceLogger:
    """Forwards to another trace sink, downgrading its failures to warnings."""

    def __init__(self, inner: TraceLogger) -> None:
        self.inner = inner
        self._logger = get_logger("trace")

    def log_detail(self, text: str) -> None:
        try:
            self.inner.log_detail(text)
        except Exception as exc:
            self._logger.warning("Trace sink %s failed: %s", type(self.inner).__name__, exc)


def guard_trace(trace: TraceLogger | None) -> TraceLogger:
    """Return ``trace`` wrapped so that logging a detail can never raise."""
    if trace is None:
        return NullTraceLogger()
    if isinstance(trace, (GuardedTraceLogger, NullTraceLogger)):
        return trace
    return GuardedTraceLogger(trace)


__all__ = [
    "FileTraceLogger",
    "GuardedTraceLogger",
    "NullTraceLogger",
    "TraceLogger",
    "configure_logging",
    "get_logger",
    "guard_trace",
]
