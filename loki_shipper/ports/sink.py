"""Log sink port definition (interface)."""

from collections.abc import Sequence
from typing import Protocol

from loki_shipper.ports.records import LogRecord

__all__ = ["LogSinkPort"]


class LogSinkPort(Protocol):
    """Capability the application logging layer ships records through."""

    def send_batch(self, records: Sequence[LogRecord], /) -> None: ...

    def send_single(self, record: LogRecord, /) -> None: ...

    def close(self) -> None: ...
