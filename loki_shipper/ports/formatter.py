"""Formatter port definition (interface)."""

from typing import Protocol

from loki_shipper.ports.records import LogRecord, Stream

__all__ = ["FormatterPort"]


class FormatterPort(Protocol):
    """Turns one log record into a stream ready for packet assembly."""

    def format(self, record: LogRecord, /) -> Stream:
        """Format a record.

        Args:
            record: Record to convert.

        Returns:
            Formatted stream.
        """
        ...
