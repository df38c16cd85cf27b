import httpx
import pytest

from services.cache import FetchCache
from services.fetcher import DataFetcher

BASE_URL = "http://upstream.test"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_fetcher(clock):
    """Build a DataFetcher whose HTTP client is served by handler."""

    def _make(handler, retry_delay_seconds: float = 0, timeout_seconds: float = 30.0) -> DataFetcher:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
        return DataFetcher(
            client,
            FetchCache(clock=clock),
            timeout_seconds=timeout_seconds,
            retry_delay_seconds=retry_delay_seconds,
        )

    return _make
