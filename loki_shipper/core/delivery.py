"""Batched, non-blocking delivery of log streams to Loki."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from types import TracebackType

from loki_shipper.core.entrypoint import push_url
from loki_shipper.core.filters import RecordFilter, min_level_filter
from loki_shipper.core.packet import Packet, build_packet, serialize_packet
from loki_shipper.ports.errors import ConfigurationError, TransportError
from loki_shipper.ports.formatter import FormatterPort
from loki_shipper.ports.metrics import DeliveryAttemptDto, MetricsPort
from loki_shipper.ports.records import LogRecord
from loki_shipper.ports.settings import SettingsPort
from loki_shipper.ports.transport import RequestHandle, TransportPort

__all__ = ["DeliveryEngine", "ResponseRegistry", "ERROR_CHANNEL"]

logger = logging.getLogger(__name__)

# Operator-facing channel for delivery failures; kept apart from the
# application's own log stream (see configure_logs).
ERROR_CHANNEL = "loki_shipper.errors"

FIRST_FAILING_HTTP_CODE = 400


class ResponseRegistry:
    """Identity-keyed set of in-flight request handles.

    Each handle is stored with the monotonic time it was dispatched at.
    """

    def __init__(self) -> None:
        self._handles: dict[RequestHandle, float] = {}

    def add(self, handle: RequestHandle, dispatched_at: float) -> None:
        self._handles.setdefault(handle, dispatched_at)

    def discard(self, handle: RequestHandle) -> float | None:
        """Remove a handle.

        Returns:
            Its dispatch time, or None if it was not tracked.
        """
        return self._handles.pop(handle, None)

    def snapshot(self) -> list[RequestHandle]:
        """Return the current handles as a list safe to iterate while mutating."""
        return list(self._handles)

    def __contains__(self, handle: object) -> bool:
        return handle in self._handles

    def __iter__(self) -> Iterator[RequestHandle]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self._handles)


class DeliveryEngine:
    """Ships log records to Loki without waiting on the network.

    Every ``send_batch``/``send_single`` call issues exactly one POST and
    then reconciles whatever responses already arrived. Outstanding
    requests are awaited once, in ``close()``.

    Notes:
        - Transport failures never reach the caller: the handle is dropped
          and a diagnostic goes to the error channel.
        - Non-2xx responses count as delivered; nothing is retried.
        - One lock serializes dispatch and reconciliation so the engine
          can be shared between threads.
    """

    def __init__(
        self,
        settings: SettingsPort,
        transport: TransportPort,
        formatter: FormatterPort,
        *,
        accepts: RecordFilter | None = None,
        report_error: Callable[[str], None] | None = None,
        metrics: MetricsPort | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            settings: Entrypoint, credentials and minimum level.
            transport: Non-blocking HTTP capability.
            formatter: Converts records into streams.
            accepts: Record predicate; defaults to the configured minimum level.
            report_error: Receives delivery failure messages; defaults to
                the ``loki_shipper.errors`` logger.
            metrics: Optional collector fed one attempt per finished request.

        Raises:
            ConfigurationError: If transport or formatter is unusable.
        """
        if transport is None or not all(
            callable(getattr(transport, name, None)) for name in ("dispatch", "poll")
        ):
            raise ConfigurationError("A transport providing dispatch() and poll() is required")
        if formatter is None or not callable(getattr(formatter, "format", None)):
            raise ConfigurationError("A formatter providing format() is required")

        self.settings = settings
        self.url = push_url(settings.entrypoint)
        self._transport = transport
        self._formatter = formatter
        self._accepts = accepts or min_level_filter(settings.level)
        self._report_error = report_error or logging.getLogger(ERROR_CHANNEL).error
        self._metrics = metrics
        self._registry = ResponseRegistry()
        self._lock = threading.Lock()
        self._closed = False

    def __enter__(self) -> DeliveryEngine:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def in_flight(self) -> int:
        """Number of requests not yet reconciled."""
        return len(self._registry)

    @property
    def closed(self) -> bool:
        return self._closed

    def send_batch(self, records: Sequence[LogRecord]) -> None:
        """Ship the batch as exactly one push request.

        Records the filter rejects are left out of the packet; a batch with
        none left still goes out, as an empty stream list.

        Args:
            records: Records in emission order.

        Raises:
            SerializationError: If a record cannot be encoded.
            RuntimeError: If the engine is closed.
        """
        streams = [self._formatter.format(r) for r in records if self._accepts(r)]
        self._dispatch_packet(build_packet(streams))

    def send_single(self, record: LogRecord) -> None:
        """Ship one record as its own push request."""
        self.send_batch([record])

    def reconcile(self, *, blocking: bool = False) -> None:
        """Drop finished requests from the registry.

        Args:
            blocking: Wait until every in-flight request finished.
        """
        with self._lock:
            self._reconcile(blocking=blocking)

    def close(self) -> None:
        """Wait for every in-flight request; later calls do nothing."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending = len(self._registry)
            if pending:
                logger.debug(f"Waiting for {pending} in-flight push request(s)")
            self._reconcile(blocking=True)

    def _dispatch_packet(self, packet: Packet) -> None:
        payload = serialize_packet(packet)
        headers = {
            "Content-Type": "application/json",
            "Content-Length": str(len(payload)),
        }

        with self._lock:
            if self._closed:
                raise RuntimeError("DeliveryEngine is closed")
            dispatched_at = time.monotonic()
            handle = self._transport.dispatch(
                "POST",
                self.url,
                headers=headers,
                body=payload,
                auth=self.settings.basic_auth,
            )
            self._registry.add(handle, dispatched_at)
            logger.debug(
                f"Pushed {len(packet.streams)} stream(s), {len(payload)} bytes "
                f"({len(self._registry)} in flight)"
            )
            self._reconcile(blocking=False)

    def _reconcile(self, *, blocking: bool) -> None:
        if not self._registry:
            return

        # A defect retires its handle like any failure, then surfaces once
        # the remaining handles were reconciled.
        defect: Exception | None = None
        for handle, chunk in self._transport.poll(self._registry.snapshot(), blocking=blocking):
            try:
                chunk.raise_for_error()
                if chunk.is_timeout and not blocking:
                    continue
                if not chunk.is_first and not chunk.is_last:
                    continue
                if chunk.is_last:
                    self._finish(handle, status_code=chunk.status_code)
            except TransportError as e:
                self._finish(handle, failed=True)
                self._report_error(f"Could not push logs to Loki:\n{e}")
            except Exception as e:
                self._finish(handle, failed=True)
                if defect is None:
                    defect = e

        if defect is not None:
            raise defect

    def _finish(
        self, handle: RequestHandle, *, status_code: int | None = None, failed: bool = False
    ) -> None:
        dispatched_at = self._registry.discard(handle)
        if dispatched_at is None or self._metrics is None:
            return
        self._metrics.update(
            DeliveryAttemptDto(
                dispatched_at_sec=dispatched_at,
                completed_at_sec=time.monotonic(),
                is_failed=failed or (status_code or 0) >= FIRST_FAILING_HTTP_CODE,
                status_code=status_code,
            )
        )
