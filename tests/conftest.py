"""Shared fixtures for the APItome test suite."""

from datetime import datetime, timezone

import httpx
import pytest

from apitome.client import DocumentationClient
from apitome.rate_limiter import RateLimiter
from apitome.sessions import SessionStore
from apitome.storage import DurableStore

from helpers import BASE_URL, event_stream_response, sse_lines


class FakeClock:
    """Controllable clock; ``now`` is seconds since the epoch."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def utc(self) -> datetime:
        return datetime.fromtimestamp(self.now, tz=timezone.utc)

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def store():
    """In-memory durable store."""
    with DurableStore() as s:
        yield s


@pytest.fixture
def sessions(store, clock):
    """Session store whose activity stamps follow the fake clock."""
    return SessionStore(store, clock=clock.utc)


@pytest.fixture
def rate_limiter(store, clock):
    """Rate limiter on the fake clock."""
    return RateLimiter(store, clock=clock)


@pytest.fixture
def sse():
    """Builds event-stream lines from event payloads."""
    return sse_lines


@pytest.fixture
def stream_response():
    """Builds a chunked event-stream response."""
    return event_stream_response


@pytest.fixture
def make_http_client():
    """Factory for an ``httpx.AsyncClient`` served by a handler function."""

    def factory(handler):
        return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def make_client(make_http_client):
    """Factory for a ``DocumentationClient`` served by a handler function."""

    def factory(handler, query_timeout: float = 5.0):
        return DocumentationClient(
            base_url=BASE_URL,
            query_timeout=query_timeout,
            http_client=make_http_client(handler),
        )

    return factory
