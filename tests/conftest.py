"""Shared fixtures."""

import socket
from collections.abc import Iterator

import pytest

from loki_shipper.adapters.driven.http.client import HttpTransport
from tests.fakes import FakeTransport, LokiStubServer


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def loki_server() -> Iterator[LokiStubServer]:
    """Start a stub Loki server for the duration of a test.

    Yields:
        The running server.
    """
    server = LokiStubServer()
    server.start()
    yield server
    server.stop()


@pytest.fixture
def http_transport() -> Iterator[HttpTransport]:
    with HttpTransport(timeout=5.0) as transport:
        yield transport


@pytest.fixture
def unused_url() -> str:
    """Return the URL of a loopback port nothing listens on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"http://127.0.0.1:{port}"
