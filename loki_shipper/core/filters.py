"""Record filters applied before formatting."""

from collections.abc import Callable

from loki_shipper.ports.records import LogRecord, Severity

__all__ = ["RecordFilter", "min_level_filter"]

RecordFilter = Callable[[LogRecord], bool]


def min_level_filter(level: Severity) -> RecordFilter:
    """Build a predicate accepting records at or above ``level``."""

    def accepts(record: LogRecord) -> bool:
        return record.level >= level

    return accepts
