"""Non-blocking HTTP transport backed by aiohttp."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Coroutine, Iterable, Iterator, Mapping
from concurrent import futures
from types import TracebackType
from typing import Any, TypeVar

import aiohttp
from aiohttp import BasicAuth, ClientTimeout

from loki_shipper.ports.errors import TransportError
from loki_shipper.ports.transport import Chunk, RequestHandle, RequestState

__all__ = ["HttpTransport", "HttpRequestHandle", "TRANSPORT_ERRORS"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 1.0
PROBE_TIMEOUT = 10
SHUTDOWN_TIMEOUT = 5.0

# Exceptions reported as transport failures rather than raised
TRANSPORT_ERRORS = (
    aiohttp.ClientError,  # Connection refused, DNS failed, payload errors
    asyncio.TimeoutError,  # ClientTimeout exceeded
    OSError,  # OS-level network error
)


class HttpRequestHandle:
    """In-flight request scheduled on the transport's event loop.

    Hashed by identity. The transport records which chunks it already
    reported so each one is emitted once.
    """

    def __init__(self, method: str, url: str) -> None:
        self.method = method
        self.url = url
        self.future: futures.Future[int] | None = None
        self.headers_received = threading.Event()
        self.first_reported = False
        self.last_reported = False

    def __repr__(self) -> str:
        return f"<HttpRequestHandle {self.method} {self.url} {self.state.value}>"

    @property
    def state(self) -> RequestState:
        if self.future is not None and self.future.done():
            if self.future.cancelled() or self.future.exception() is not None:
                return RequestState.ERRORED
            return RequestState.COMPLETE
        if self.headers_received.is_set():
            return RequestState.FIRST_BYTE_SEEN
        return RequestState.PENDING

    def error(self) -> BaseException | None:
        """Return the failure of a finished request, if it failed.

        Network failures come back as TransportError; anything else (a
        malformed header, say) is returned as raised so the caller can
        retire the handle before propagating it.
        """
        assert self.future is not None and self.future.done()
        if self.future.cancelled():
            return TransportError(f"{self.method} {self.url} was cancelled")
        return self.future.exception()


class HttpTransport:
    """HTTP transport driving an aiohttp session from a background thread.

    Features:
    - dispatch() returns at once; the request runs on a private event loop.
    - poll() reports progress per handle, blocking or not.
    - Context manager for proper resource cleanup.
    - Health check/probe functionality.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize HTTP transport.

        Args:
            timeout: Total timeout in seconds for each request.
        """
        self.timeout = timeout
        self.session: aiohttp.ClientSession | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None

    def __enter__(self) -> HttpTransport:
        """Start the event loop thread and open the session.

        Returns:
            Self for use in with statement.
        """
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever, name="loki-shipper-http", daemon=True
        )
        self._thread.start()
        self.session = self._run(self._open_session())
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the session and stop the event loop thread."""
        if self._loop is None:
            return
        if self.session is not None:
            self._run(self.session.close())
            self.session = None
        self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread is not None:
            self._thread.join(SHUTDOWN_TIMEOUT)
        self._loop.close()
        self._loop = None
        self._thread = None

    async def _open_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(timeout=ClientTimeout(total=self.timeout))

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine on the transport loop and wait for its result."""
        if self._loop is None:
            coro.close()
            raise RuntimeError("Transport not started; use 'with' context manager")
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result()

    def dispatch(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes,
        auth: tuple[str, str] | None = None,
    ) -> HttpRequestHandle:
        """Schedule a request and return without waiting for it.

        Args:
            method: HTTP method.
            url: Target URL.
            headers: Request headers.
            body: Request body.
            auth: Optional (username, password) for Basic authentication.

        Returns:
            Handle tracking the request.

        Raises:
            RuntimeError: If the transport is not started.
        """
        if self._loop is None or self.session is None:
            raise RuntimeError("Transport not started; use 'with' context manager")

        handle = HttpRequestHandle(method, url)
        basic_auth = BasicAuth(*auth) if auth else None
        handle.future = asyncio.run_coroutine_threadsafe(
            self._send(handle, dict(headers), body, basic_auth), self._loop
        )
        return handle

    async def _send(
        self,
        handle: HttpRequestHandle,
        headers: dict[str, str],
        body: bytes,
        auth: BasicAuth | None,
    ) -> int:
        """Perform one request on the loop thread.

        Returns:
            HTTP status code.

        Raises:
            TransportError: On any network-level failure.
        """
        assert self.session is not None
        try:
            async with self.session.request(
                handle.method, handle.url, data=body, headers=headers, auth=auth
            ) as resp:
                handle.headers_received.set()
                await resp.read()
                return resp.status
        except TRANSPORT_ERRORS as e:
            raise TransportError(f"{handle.method} {handle.url} failed: {e!r}") from e

    def poll(
        self, handles: Iterable[RequestHandle], *, blocking: bool
    ) -> Iterator[tuple[HttpRequestHandle, Chunk]]:
        """Report progress for handles created by this transport.

        Args:
            handles: Handles to inspect.
            blocking: Wait until every handle reached a terminal state.

        Yields:
            (handle, chunk) pairs; a timeout chunk for handles without news
            when not blocking.
        """
        outstanding: list[HttpRequestHandle] = list(handles)  # type: ignore[arg-type]

        if not blocking:
            for handle in outstanding:
                yield from self._progress(handle, idle=True)
            return

        while outstanding:
            for handle in outstanding:
                yield from self._progress(handle, idle=False)
            outstanding = [h for h in outstanding if not h.last_reported]
            if outstanding:
                futures.wait(
                    [h.future for h in outstanding if h.future is not None],
                    return_when=futures.FIRST_COMPLETED,
                )

    def _progress(
        self, handle: HttpRequestHandle, *, idle: bool
    ) -> Iterator[tuple[HttpRequestHandle, Chunk]]:
        """Yield the chunks not yet reported for one handle."""
        if handle.last_reported:
            return

        state = handle.state
        if state is RequestState.ERRORED:
            handle.last_reported = True
            yield handle, Chunk(error=handle.error())
            return

        if state is not RequestState.PENDING and not handle.first_reported:
            handle.first_reported = True
            yield handle, Chunk(is_first=True)
            if state is RequestState.FIRST_BYTE_SEEN:
                return

        if state is RequestState.COMPLETE:
            assert handle.future is not None
            handle.last_reported = True
            yield handle, Chunk(is_last=True, status_code=handle.future.result())
            return

        if idle:
            yield handle, Chunk(is_timeout=True)

    async def _probe_once(self, url: str, timeout: int = PROBE_TIMEOUT) -> int:
        """Single HTTP GET request for health check.

        Args:
            url: URL to probe.
            timeout: Timeout in seconds.

        Returns:
            HTTP status code.

        Raises:
            RuntimeError: If session not initialized.
            aiohttp exceptions: Network/timeout errors.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'with' context manager")
        client_timeout = ClientTimeout(timeout)
        async with self.session.get(url, timeout=client_timeout, allow_redirects=True) as resp:
            return resp.status

    def probe(self, url: str, timeout: int = PROBE_TIMEOUT) -> bool:
        """Check if HTTP endpoint is reachable and ready.

        Args:
            url: URL to probe.
            timeout: Timeout in seconds.

        Returns:
            True if reachable (200 <= status < 300), False otherwise.
        """
        logger.info(f"Probing endpoint {url}...")
        try:
            status = self._run(self._probe_once(url, timeout))
        except Exception as e:
            logger.warning(f"Probe failed for {url}: {e}")
            return False

        logger.info(f"Probe for {url} returned status {status}")
        return 200 <= status < 300
