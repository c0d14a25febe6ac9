"""Default record-to-stream formatter."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from loki_shipper.core.packet import dumps
from loki_shipper.ports.records import LogRecord, Stream

__all__ = ["LokiFormatter", "to_nanoseconds"]


def to_nanoseconds(timestamp: datetime) -> str:
    """Return the epoch nanoseconds of a datetime as a decimal string.

    Whole seconds and microseconds are combined as integers so no
    precision is lost to float rounding.
    """
    seconds = int(timestamp.replace(microsecond=0).timestamp())
    return str(seconds * 1_000_000_000 + timestamp.microsecond * 1_000)


class LokiFormatter:
    """Formats each record as its own single-entry stream.

    Labels are the global labels plus ``host`` (the system name, when
    configured) and ``level``. The line is the message, followed by the
    merged context as compact JSON when there is any.
    """

    def __init__(
        self,
        labels: Mapping[str, str] | None = None,
        context: Mapping[str, Any] | None = None,
        system_name: str | None = None,
    ) -> None:
        self.labels = dict(labels or {})
        self.context = dict(context or {})
        self.system_name = system_name

    def format(self, record: LogRecord) -> Stream:
        labels = dict(self.labels)
        if self.system_name:
            labels["host"] = self.system_name
        labels["level"] = record.level.name.lower()

        return Stream(
            labels=labels,
            values=((to_nanoseconds(record.timestamp), self.format_line(record)),),
        )

    def format_line(self, record: LogRecord) -> str:
        """Render the log line for a record.

        Raises:
            SerializationError: If the context cannot be encoded.
        """
        context = {**self.context, **record.context}
        if not context:
            return record.message
        return f"{record.message} {dumps(context)}"
