"""Test doubles shared across the suite."""

from __future__ import annotations

import asyncio
import json
import threading
from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime, timezone
from typing import Any

from aiohttp import web

from loki_shipper.ports.errors import TransportError
from loki_shipper.ports.records import LogRecord, Severity
from loki_shipper.ports.settings import SettingsPort
from loki_shipper.ports.transport import Chunk, RequestState

__all__ = ["FakeHandle", "FakeTransport", "LokiStubServer", "make_record", "make_settings"]

FIXED_TIME = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)


def make_settings(**overrides: Any) -> SettingsPort:
    """Shared settings factory with sensible test defaults."""
    defaults: dict[str, Any] = {"entrypoint": "http://loki:3100"}
    defaults.update(overrides)
    return SettingsPort(**defaults)


def make_record(
    message: str = "hello",
    level: Severity = Severity.INFO,
    context: Mapping[str, Any] | None = None,
) -> LogRecord:
    """Shared LogRecord factory with a fixed timestamp."""
    return LogRecord(level=level, message=message, context=context or {}, timestamp=FIXED_TIME)


class FakeHandle:
    """Request handle recorded by FakeTransport."""

    def __init__(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes,
        auth: tuple[str, str] | None,
    ) -> None:
        self.method = method
        self.url = url
        self.headers = dict(headers)
        self.body = body
        self.auth = auth
        self.ready = False
        self.fails = False
        self.defect: Exception | None = None
        self.status_code = 204
        self._state = RequestState.PENDING

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def payload(self) -> dict[str, Any]:
        return json.loads(self.body.decode("utf-8"))


class FakeTransport:
    """In-memory transport that records requests for test assertions.

    Handles resolve on a blocking poll, or on any poll once marked ready
    (``auto_complete`` marks every new handle ready).
    """

    def __init__(self, *, auto_complete: bool = False, status_code: int = 204) -> None:
        self.auto_complete = auto_complete
        self.status_code = status_code
        self.requests: list[FakeHandle] = []
        self.polls: list[tuple[int, bool]] = []
        self._lock = threading.Lock()

    def dispatch(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes,
        auth: tuple[str, str] | None = None,
    ) -> FakeHandle:
        handle = FakeHandle(method, url, headers, body, auth)
        handle.ready = self.auto_complete
        handle.status_code = self.status_code
        with self._lock:
            self.requests.append(handle)
        return handle

    def poll(
        self, handles: Iterable[FakeHandle], *, blocking: bool
    ) -> Iterator[tuple[FakeHandle, Chunk]]:
        handles = list(handles)
        self.polls.append((len(handles), blocking))
        for handle in handles:
            if not (blocking or handle.ready):
                yield handle, Chunk(is_timeout=True)
                continue
            if handle.fails:
                handle._state = RequestState.ERRORED
                yield handle, Chunk(error=TransportError(f"POST {handle.url} failed: refused"))
                continue
            if handle.defect is not None:
                handle._state = RequestState.ERRORED
                yield handle, Chunk(error=handle.defect)
                continue
            handle._state = RequestState.FIRST_BYTE_SEEN
            yield handle, Chunk(is_first=True)
            yield handle, Chunk()
            handle._state = RequestState.COMPLETE
            yield handle, Chunk(is_last=True, status_code=handle.status_code)


class LokiStubServer:
    """Minimal Loki push endpoint served by aiohttp on a loopback port."""

    def __init__(self, *, status: int = 204, ready_status: int = 200, delay: float = 0.0) -> None:
        self.status = status
        self.ready_status = ready_status
        self.delay = delay
        self.requests: list[dict[str, Any]] = []
        self.url = ""
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._runner: web.AppRunner | None = None

    def _call(self, coro: Any) -> Any:
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout=10)

    async def _push(self, request: web.Request) -> web.Response:
        body = await request.read()
        self.requests.append(
            {
                "content_type": request.headers.get("Content-Type"),
                "content_length": request.headers.get("Content-Length"),
                "authorization": request.headers.get("Authorization"),
                "body": body,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        return web.Response(status=self.status)

    async def _ready(self, request: web.Request) -> web.Response:
        return web.Response(status=self.ready_status, text="ready")

    def start(self) -> None:
        self._thread.start()
        app = web.Application()
        app.router.add_post("/loki/api/v1/push", self._push)
        app.router.add_get("/ready", self._ready)
        self._runner = web.AppRunner(app)
        self._call(self._runner.setup())
        site = web.TCPSite(self._runner, "127.0.0.1", 0)
        self._call(site.start())
        host, port = self._runner.addresses[0][:2]
        self.url = f"http://{host}:{port}"

    def stop(self) -> None:
        if self._runner is not None:
            self._call(self._runner.cleanup())
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(10)
        self._loop.close()

    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(r["body"].decode("utf-8")) for r in self.requests]
