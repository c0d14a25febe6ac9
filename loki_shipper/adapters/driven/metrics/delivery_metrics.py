"""Push outcome counters and a latency window for the delivery engine."""

from __future__ import annotations

import statistics
from collections import deque

from loki_shipper.ports.metrics import DeliveryAttemptDto, MetricsPort

__all__ = ["Metrics"]


class Metrics(MetricsPort):
    """Delivery statistics for one shipper run.

    Every finished push falls in one bucket:
    - accepted: Loki answered below 400.
    - rejected: Loki answered 400 or above (bad labels, rate limits, ...).
    - unreachable: no answer at all (refused, timed out, request defect).

    Latency (dispatch to reconciliation) is kept for the last
    ``window_size`` pushes only. Latency includes the time a push waited to
    be reconciled, so it is an upper bound on the network round trip.

    Updated under the delivery engine's lock.
    """

    def __init__(self, *, window_size: int = 100) -> None:
        self._latencies_ms: deque[float] = deque(maxlen=window_size)
        self.accepted = 0
        self.rejected = 0
        self.unreachable = 0
        self.last_rejection: int | None = None

    def update(self, attempt: DeliveryAttemptDto) -> None:
        self._latencies_ms.append(
            (attempt.completed_at_sec - attempt.dispatched_at_sec) * 1_000.0
        )
        if attempt.status_code is None:
            self.unreachable += 1
        elif attempt.is_failed:
            self.rejected += 1
            self.last_rejection = attempt.status_code
        else:
            self.accepted += 1

    @property
    def pushes(self) -> int:
        return self.accepted + self.rejected + self.unreachable

    def __str__(self) -> str:
        if not self.pushes:
            return "no pushes finished"

        summary = (
            f"pushes={self.pushes} | "
            f"latency avg={statistics.fmean(self._latencies_ms):7.1f} ms "
            f"max={max(self._latencies_ms):7.1f} ms "
            f"(last {len(self._latencies_ms)}) | "
            f"rejected={self.rejected} | "
            f"unreachable={self.unreachable}"
        )
        if self.last_rejection is not None:
            summary += f" | last rejection={self.last_rejection}"
        return summary
