"""stdlib ``logging`` handlers shipping records through a log sink."""

from __future__ import annotations

import logging
import logging.handlers
from datetime import datetime, timezone
from typing import Any

from loki_shipper.ports.records import LogRecord, Severity
from loki_shipper.ports.sink import LogSinkPort

__all__ = ["LokiHandler", "BatchingLokiHandler", "to_log_record"]

# Records from this package are never shipped, to avoid feedback loops.
OWN_LOGGER_PREFIX = "loki_shipper"


def to_log_record(record: logging.LogRecord, message: str) -> LogRecord:
    """Convert a stdlib record into a shippable one.

    Args:
        record: The stdlib record.
        message: Rendered message text.

    Returns:
        Record carrying the logger name and any ``extra={"context": ...}``.
    """
    context: dict[str, Any] = {"logger": record.name}
    extra = getattr(record, "context", None)
    if isinstance(extra, dict):
        context.update(extra)

    return LogRecord(
        level=Severity.from_levelno(record.levelno),
        message=message,
        context=context,
        timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
    )


def _is_own(record: logging.LogRecord) -> bool:
    return record.name == OWN_LOGGER_PREFIX or record.name.startswith(OWN_LOGGER_PREFIX + ".")


class LokiHandler(logging.Handler):
    """Ships every record as its own push request.

    Closing the handler closes the sink, which waits for in-flight
    requests; ``logging.shutdown()`` does this at interpreter exit.
    """

    def __init__(self, sink: LogSinkPort, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        if _is_own(record):
            return
        self.sink.send_single(to_log_record(record, self.format(record)))

    def flush(self) -> None:
        reconcile = getattr(self.sink, "reconcile", None)
        if reconcile is not None:
            reconcile(blocking=False)

    def close(self) -> None:
        try:
            self.sink.close()
        finally:
            super().close()


class BatchingLokiHandler(logging.handlers.BufferingHandler):
    """Buffers records and ships each full buffer as one push request."""

    def __init__(self, sink: LogSinkPort, capacity: int = 100) -> None:
        super().__init__(capacity)
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        if _is_own(record):
            return
        super().emit(record)

    def flush(self) -> None:
        self.acquire()
        try:
            if self.buffer:
                batch = [to_log_record(r, self.format(r)) for r in self.buffer]
                self.buffer.clear()
                self.sink.send_batch(batch)
        finally:
            self.release()

    def close(self) -> None:
        try:
            self.flush()
            self.sink.close()
        finally:
            super().close()
