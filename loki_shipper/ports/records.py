"""Log record, severity and stream definitions (DTOs)."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

__all__ = ["Severity", "LogRecord", "Stream"]


class Severity(enum.IntEnum):
    """Record severity, numerically aligned with stdlib ``logging`` levels."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @classmethod
    def from_levelno(cls, levelno: int) -> Severity:
        """Map a stdlib level number to the closest severity at or below it.

        Args:
            levelno: Level number as found on ``logging.LogRecord.levelno``.

        Returns:
            Matching severity; levels below DEBUG map to DEBUG.
        """
        for severity in sorted(cls, reverse=True):
            if levelno >= severity:
                return severity
        return cls.DEBUG

    @classmethod
    def from_name(cls, name: str) -> Severity:
        """Parse a severity name, case-insensitively.

        Raises:
            ValueError: If the name is not a known severity.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError as e:
            raise ValueError(f"Unknown severity: {name!r}") from e


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class LogRecord:
    """One structured log record produced by the host application.

    Attributes:
        level: Record severity.
        message: Human-readable message text.
        context: Structured data attached to the record.
        timestamp: When the record was emitted.
    """

    level: Severity
    message: str
    context: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, slots=True)
class Stream:
    """One formatted unit of a push payload.

    Attributes:
        labels: Label set the remote endpoint indexes the stream by.
        values: Ordered (nanosecond timestamp string, line) entries.
    """

    labels: Mapping[str, str]
    values: tuple[tuple[str, str], ...]

    def as_dict(self) -> dict[str, Any]:
        """Return the wire representation of the stream."""
        return {
            "stream": dict(self.labels),
            "values": [[ts, line] for ts, line in self.values],
        }
