"""Metrics port definition (interface and DTO)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

__all__ = ["DeliveryAttemptDto", "MetricsPort"]


@dataclass(slots=True, frozen=True)
class DeliveryAttemptDto:
    """Immutable snapshot of one reconciled push request.

    Attributes:
        dispatched_at_sec: Monotonic seconds when the request was dispatched.
        completed_at_sec: Monotonic seconds when reconciliation removed it.
        is_failed: True on transport failure or HTTP status >= 400.
        status_code: HTTP status code when a response arrived; None otherwise.
    """

    dispatched_at_sec: float
    completed_at_sec: float
    is_failed: bool = False
    status_code: int | None = None


class MetricsPort(Protocol):
    """Interface for recording delivery metrics.

    Core calls update() for every handle leaving the registry;
    presentation layers call __str__() to render summaries.
    """

    def update(self, attempt: DeliveryAttemptDto, /) -> None:
        """Record a finished push request.

        Args:
            attempt: The attempt to record.
        """
        ...

    def __str__(self) -> str:
        """Return concise textual summary for humans.

        Returns:
            Formatted metrics string.
        """
        ...
