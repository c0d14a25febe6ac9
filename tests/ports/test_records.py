"""Tests for record and severity DTOs."""

import logging

import pytest

from loki_shipper.ports.errors import TransportError
from loki_shipper.ports.records import LogRecord, Severity, Stream
from loki_shipper.ports.transport import Chunk, RequestState

__all__ = []


@pytest.mark.parametrize(
    ("levelno", "expected"),
    [
        (logging.DEBUG, Severity.DEBUG),
        (logging.INFO, Severity.INFO),
        (logging.WARNING, Severity.WARNING),
        (logging.ERROR, Severity.ERROR),
        (logging.CRITICAL, Severity.CRITICAL),
        (25, Severity.INFO),
        (5, Severity.DEBUG),
    ],
)
def test_severity_from_levelno(levelno: int, expected: Severity) -> None:
    """Stdlib level numbers should map to the closest severity below."""
    assert Severity.from_levelno(levelno) is expected


def test_severity_from_name_is_case_insensitive() -> None:
    """Severity names should parse regardless of case."""
    assert Severity.from_name(" warning ") is Severity.WARNING


def test_severity_from_name_rejects_unknown() -> None:
    """Unknown names should raise ValueError."""
    with pytest.raises(ValueError, match="Unknown severity"):
        Severity.from_name("verbose")


def test_log_record_defaults_to_aware_timestamp() -> None:
    """Records should get a timezone-aware timestamp and empty context."""
    record = LogRecord(level=Severity.INFO, message="hi")

    assert record.timestamp.tzinfo is not None
    assert dict(record.context) == {}


def test_stream_as_dict() -> None:
    """Stream should render as the Loki wire object."""
    stream = Stream(labels={"app": "svc"}, values=(("1", "a"), ("2", "b")))

    assert stream.as_dict() == {"stream": {"app": "svc"}, "values": [["1", "a"], ["2", "b"]]}


def test_chunk_raise_for_error() -> None:
    """Only error chunks should raise."""
    Chunk(is_last=True, status_code=204).raise_for_error()

    with pytest.raises(TransportError, match="refused"):
        Chunk(error=TransportError("refused")).raise_for_error()


def test_request_state_terminal() -> None:
    """Only complete and errored states are terminal."""
    assert RequestState.COMPLETE.is_terminal
    assert RequestState.ERRORED.is_terminal
    assert not RequestState.PENDING.is_terminal
    assert not RequestState.FIRST_BYTE_SEEN.is_terminal
