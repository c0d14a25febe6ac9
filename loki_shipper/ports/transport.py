"""Transport port definition (interface and DTOs)."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Protocol

__all__ = ["RequestState", "RequestHandle", "Chunk", "TransportPort"]


class RequestState(enum.Enum):
    """Lifecycle of one in-flight request."""

    PENDING = "pending"
    FIRST_BYTE_SEEN = "first-byte-seen"
    COMPLETE = "complete"
    ERRORED = "errored"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.COMPLETE, RequestState.ERRORED)


class RequestHandle(Protocol):
    """Opaque reference to one in-flight request.

    Handles are hashed by identity; the engine only stores them and hands
    them back to the transport that created them.
    """

    @property
    def state(self) -> RequestState: ...


@dataclass(frozen=True, slots=True)
class Chunk:
    """One progress report for a request handle.

    Attributes:
        is_timeout: No new data was available when polled.
        is_first: Response headers (the first bytes) arrived.
        is_last: The full response was received.
        status_code: HTTP status, set on the last chunk only.
        error: Failure carried by this chunk, if any. A TransportError for
            network failures; any other exception is a defect in the request.
    """

    is_timeout: bool = False
    is_first: bool = False
    is_last: bool = False
    status_code: int | None = None
    error: BaseException | None = None

    def raise_for_error(self) -> None:
        """Raise the carried failure, if any.

        Raises:
            TransportError: If the request failed on the network.
            Exception: Whatever else the request raised.
        """
        if self.error is not None:
            raise self.error


class TransportPort(Protocol):
    """Non-blocking HTTP capability driven by the delivery engine."""

    def dispatch(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes,
        auth: tuple[str, str] | None = None,
    ) -> RequestHandle:
        """Start a request without waiting for its response.

        Returns:
            Handle representing the in-flight request.
        """
        ...

    def poll(
        self, handles: Iterable[RequestHandle], *, blocking: bool
    ) -> Iterator[tuple[RequestHandle, Chunk]]:
        """Report progress for a set of handles.

        Args:
            handles: Handles to inspect.
            blocking: When False, return right after reporting what is
                available now (a timeout chunk for handles without news).
                When True, return only once every handle is terminal.

        Yields:
            (handle, chunk) pairs.
        """
        ...
