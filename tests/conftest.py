"""Shared fixtures: fast config and a stub network provider, no internet."""

from datetime import date
from pathlib import Path

import pytest

from socialprobe.config import ScraperConfig
from socialprobe.core.fetcher import FetchResult

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Day the fixture posts are evaluated against for staleness
TODAY = date(2024, 5, 10)


def load_fixture(name: str) -> str:
    """Load a fixture file as text."""
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def page(body: str = "", status: int = 200, url: str = "", cookies: dict | None = None) -> FetchResult:
    """Build a canned FetchResult."""
    return FetchResult(status=status, body=body, url=url, cookies=cookies or {})


class StubNetwork:
    """NetworkAccess answering from the provider's canned routes."""

    def __init__(self, provider: "StubProvider", identity: str):
        self.provider = provider
        self.identity = identity
        self.closed = False

    async def fetch(self, url, headers=None, timeout_s=None):
        self.provider.requests.append((self.identity, url, dict(headers or {})))
        return self.provider.respond(url, self.provider.routes)

    async def render(self, url, timeout_s=None, scrolls=0):
        self.provider.requests.append((self.identity, url, {"render": scrolls}))
        return self.provider.respond(url, self.provider.rendered)

    async def aclose(self):
        self.closed = True


class StubProvider:
    """
    NetworkAccessProvider with canned responses per URL.

    A route value may be a FetchResult, an exception to raise, or a list of
    those consumed one per request (the last one repeats). Unknown URLs
    answer 404.
    """

    def __init__(self, routes: dict | None = None, rendered: dict | None = None):
        self.routes = routes or {}
        self.rendered = rendered or {}
        self.requests: list[tuple[str, str, dict]] = []
        self.acquired: list[StubNetwork] = []
        self.fresh_flags: list[bool] = []

    async def acquire(self, fresh: bool = False) -> StubNetwork:
        self.fresh_flags.append(fresh)
        net = StubNetwork(self, f"stub-{len(self.acquired) + 1}")
        self.acquired.append(net)
        return net

    def respond(self, url: str, table: dict) -> FetchResult:
        value = table.get(url)
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if value is None:
            return page(status=404, url=url)
        if isinstance(value, Exception):
            raise value
        if not value.url:
            value.url = url
        return value

    def urls(self) -> list[str]:
        return [url for _, url, _ in self.requests]


@pytest.fixture
def config() -> ScraperConfig:
    """Config with every delay and backoff disabled."""
    return ScraperConfig(
        rate_limit_backoff_s=0,
        bootstrap_delay_min_ms=0,
        bootstrap_delay_max_ms=0,
        request_delay_min_ms=0,
        request_delay_max_ms=0,
        staleness_days=36500,
    )


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()
