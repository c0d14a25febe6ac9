"""Tests for the stdlib logging handlers."""

import logging
from collections.abc import Sequence

import pytest

from loki_shipper.adapters.driving.logging_handler import (
    BatchingLokiHandler,
    LokiHandler,
    to_log_record,
)
from loki_shipper.ports.records import LogRecord, Severity

__all__ = []


class RecordingSink:
    """Log sink that records calls for testing."""

    def __init__(self) -> None:
        self.singles: list[LogRecord] = []
        self.batches: list[list[LogRecord]] = []
        self.reconciles: list[bool] = []
        self.closed = 0

    def send_batch(self, records: Sequence[LogRecord]) -> None:
        self.batches.append(list(records))

    def send_single(self, record: LogRecord) -> None:
        self.singles.append(record)

    def reconcile(self, *, blocking: bool = False) -> None:
        self.reconciles.append(blocking)

    def close(self) -> None:
        self.closed += 1


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


def _logger(name: str, handler: logging.Handler) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.handlers = [handler]
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    return logger


def test_to_log_record() -> None:
    """Stdlib records should keep level, time, logger name and context."""
    record = logging.LogRecord("app.db", logging.WARNING, __file__, 1, "slow %s", ("query",), None)
    record.context = {"ms": 250}

    converted = to_log_record(record, record.getMessage())

    assert converted.level is Severity.WARNING
    assert converted.message == "slow query"
    assert dict(converted.context) == {"logger": "app.db", "ms": 250}
    assert converted.timestamp.timestamp() == pytest.approx(record.created)


def test_handler_ships_each_record(sink: RecordingSink) -> None:
    """Every record should go out through send_single."""
    logger = _logger("test.single", LokiHandler(sink))

    logger.info("hello %s", "world")
    logger.error("failed", extra={"context": {"job": 7}})

    assert [r.message for r in sink.singles] == ["hello world", "failed"]
    assert sink.singles[1].context["job"] == 7
    assert sink.singles[1].level is Severity.ERROR


def test_handler_ignores_own_records(sink: RecordingSink) -> None:
    """Records from loki_shipper loggers should never be shipped."""
    logger = _logger("loki_shipper.core.delivery", LokiHandler(sink))

    logger.error("Could not push logs")

    assert sink.singles == []


def test_handler_flush_reconciles_without_blocking(sink: RecordingSink) -> None:
    """flush() should only collect finished requests."""
    LokiHandler(sink).flush()

    assert sink.reconciles == [False]


def test_handler_close_closes_sink(sink: RecordingSink) -> None:
    """close() should drain the sink."""
    LokiHandler(sink).close()

    assert sink.closed == 1


def test_batching_handler_ships_full_buffer(sink: RecordingSink) -> None:
    """A full buffer should be shipped as one batch."""
    handler = BatchingLokiHandler(sink, capacity=3)
    logger = _logger("test.batch", handler)

    for i in range(7):
        logger.info(f"line {i}")

    assert [[r.message for r in b] for b in sink.batches] == [
        ["line 0", "line 1", "line 2"],
        ["line 3", "line 4", "line 5"],
    ]

    handler.close()

    assert [r.message for r in sink.batches[-1]] == ["line 6"]
    assert sink.closed == 1


def test_batching_handler_skips_empty_flush(sink: RecordingSink) -> None:
    """Flushing an empty buffer should not send anything."""
    BatchingLokiHandler(sink).flush()

    assert sink.batches == []
