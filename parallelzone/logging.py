"""Process-aware loggers with selectable severity thresholds."""

from __future__ import annotations

import enum
import sys
from typing import TextIO


class Severity(enum.IntEnum):
    """Severity of a log message, ordered from least to most severe."""

    trace = 0
    debug = 1
    info = 2
    warn = 3
    error = 4
    critical = 5

    @property
    def label(self) -> str:
        return "warning" if self is Severity.warn else self.name


class StreamSink:
    """Writes log records to a text stream, dropping those below a threshold.

    When no stream is given, records go to whatever ``sys.stdout`` is at the
    time they are written.
    """

    def __init__(self, name: str, stream: TextIO | None = None) -> None:
        self.name = name
        self.stream = stream
        self.severity = Severity.info

    def set_severity(self, severity: Severity) -> None:
        self.severity = Severity(severity)

    def log(self, severity: Severity, msg: str) -> None:
        severity = Severity(severity)
        if severity < self.severity:
            return
        out = self.stream if self.stream is not None else sys.stdout
        out.write(f"[{self.name}] [{severity.label}] {msg}\n")
        out.flush()

    def copy(self) -> StreamSink:
        duplicate = StreamSink(self.name, self.stream)
        duplicate.severity = self.severity
        return duplicate

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StreamSink):
            return NotImplemented
        return (
            self.name == other.name
            and self.severity == other.severity
            and self.stream is other.stream
        )

    def __repr__(self) -> str:
        return f"StreamSink(name={self.name!r}, severity={self.severity.name})"


class Logger:
    """Front end for logging; a logger without a sink silently drops messages."""

    severity = Severity

    def __init__(self, sink: StreamSink | None = None) -> None:
        self._sink = sink

    @property
    def null(self) -> bool:
        """True if this logger has no sink."""
        return self._sink is None

    def set_severity(self, severity: Severity) -> None:
        if self._sink is not None:
            self._sink.set_severity(severity)

    def trace(self, msg: str) -> Logger:
        return self.log(Severity.trace, msg)

    def debug(self, msg: str) -> Logger:
        return self.log(Severity.debug, msg)

    def info(self, msg: str) -> Logger:
        return self.log(Severity.info, msg)

    def warn(self, msg: str) -> Logger:
        return self.log(Severity.warn, msg)

    def error(self, msg: str) -> Logger:
        return self.log(Severity.error, msg)

    def critical(self, msg: str) -> Logger:
        return self.log(Severity.critical, msg)

    def log(self, *args) -> Logger:
        """Log ``msg`` at info level, or ``(severity, msg)`` at that level."""
        if len(args) == 1:
            severity, msg = Severity.info, args[0]
        elif len(args) == 2:
            severity, msg = args
        else:
            raise TypeError(
                f"log() takes a message or a severity and a message, "
                f"got {len(args)} arguments"
            )
        if self._sink is not None:
            self._sink.log(severity, msg)
        return self

    def __lshift__(self, msg: str) -> Logger:
        return self.log(msg)

    def copy(self) -> Logger:
        return Logger(self._sink.copy() if self._sink is not None else None)

    def __copy__(self) -> Logger:
        return self.copy()

    def swap(self, other: Logger) -> None:
        self._sink, other._sink = other._sink, self._sink

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Logger):
            return NotImplemented
        if (self._sink is None) != (other._sink is None):
            return False
        if self._sink is None:
            return True
        return self._sink == other._sink

    def __repr__(self) -> str:
        return f"Logger({self._sink!r})"


class LoggerFactory:
    """Builds the loggers the runtime hands out by default."""

    @staticmethod
    def default_global_logger(rank: int) -> Logger:
        """Return the program-wide logger for ``rank``; only rank 0 prints."""
        if rank == 0:
            return Logger(StreamSink("Rank 0"))
        return Logger()