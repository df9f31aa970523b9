"""Network access contract and its default curl_cffi / Playwright implementation."""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Protocol
from urllib.parse import urlparse

from curl_cffi import CurlError
from curl_cffi.requests import AsyncSession
from playwright.async_api import async_playwright, Error as PlaywrightError

from socialprobe.config import ScraperConfig
from socialprobe.exceptions import NetworkFailure
from socialprobe.logging import get_logger, mask_proxy
from socialprobe.proxy.rotating import IdentityPool, NetworkIdentity, ProxyProvider


@dataclass
class FetchResult:
    """Result of one request or page rendering."""

    status: int
    body: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400


class NetworkAccess(Protocol):
    """Handle bound to one network identity."""

    identity: str

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
    ) -> FetchResult:
        """Perform a GET. Raises NetworkFailure on transport error or timeout."""
        ...

    async def render(
        self,
        url: str,
        timeout_s: float | None = None,
        scrolls: int = 0,
    ) -> FetchResult:
        """Render a page in a headless browser and return its HTML."""
        ...

    async def aclose(self) -> None:
        ...


class NetworkAccessProvider(Protocol):
    """Hands out network access handles, one identity per attempt."""

    async def acquire(self, fresh: bool = False) -> NetworkAccess:
        ...


# Resource types and URL fragments never needed for extraction
BLOCKED_RESOURCE_TYPES = {"image", "stylesheet", "font", "media", "imageset"}
BLOCKED_URL_PATTERNS = (
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".ico",
    ".woff", ".woff2", ".ttf", ".eot",
    ".mp4", ".webm", ".mp3",
    "analytics", "tracking", "pixel", "fbevents",
)

COOKIE_ACCEPT_SELECTORS = [
    'button[data-cookiebanner="accept_button"]',
    'button[title="Allow all cookies"]',
    'button[title="Zezwól na wszystkie pliki cookie"]',
    'div[role="dialog"] button:has-text("Allow all cookies")',
    'div[role="dialog"] button:has-text("Zezwól")',
    'button:has-text("Decline optional cookies")',
]


def _playwright_proxy(proxy: str) -> dict:
    """Split credentials out of a proxy URL into Playwright's format."""
    parsed = urlparse(proxy)
    settings = {"server": f"{parsed.scheme}://{parsed.hostname}:{parsed.port}"}
    if parsed.username:
        settings["username"] = parsed.username
        settings["password"] = parsed.password or ""
    return settings


async def _route_filter(route) -> None:
    request = route.request
    url = request.url.lower()
    if request.resource_type in BLOCKED_RESOURCE_TYPES or any(p in url for p in BLOCKED_URL_PATTERNS):
        await route.abort()
    else:
        await route.continue_()


class HttpNetwork:
    """
    Default NetworkAccess: curl_cffi with a browser TLS fingerprint for
    plain requests, Playwright Chromium for renderings.
    """

    def __init__(self, identity: NetworkIdentity, config: ScraperConfig | None = None):
        self.config = config or ScraperConfig()
        self._identity = identity
        self.identity = f"{identity.session_id}@{mask_proxy(identity.proxy)}"
        self._session: AsyncSession | None = None
        self._log = get_logger("network").bind(identity=self.identity)

    def _ensure_session(self) -> AsyncSession:
        if self._session is None:
            self._session = AsyncSession(impersonate=self._identity.impersonate)
        return self._session

    def _cookies(self) -> dict[str, str]:
        if self._session is None:
            return {}
        return {cookie.name: cookie.value for cookie in self._session.cookies.jar}

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
    ) -> FetchResult:
        """
        GET a URL through this identity's proxy and cookie jar.

        Args:
            url: Target URL
            headers: Request headers (a User-Agent is added if missing)
            timeout_s: Request timeout, config default if None

        Returns:
            FetchResult for any HTTP status

        Raises:
            NetworkFailure: Transport error or timeout
        """
        session = self._ensure_session()
        request_headers = dict(headers or {})
        if self._identity.user_agent and "User-Agent" not in request_headers:
            request_headers["User-Agent"] = self._identity.user_agent
        timeout = timeout_s or self.config.request_timeout_s

        try:
            response = await session.get(
                url,
                headers=request_headers,
                timeout=timeout,
                allow_redirects=True,
                proxy=self._identity.proxy,
            )
        except asyncio.TimeoutError as e:
            raise NetworkFailure(f"Timed out after {timeout}s: {url}") from e
        except CurlError as e:
            raise NetworkFailure(f"Transport error: {e}") from e

        self._log.debug("fetched", url=url, status=response.status_code)
        return FetchResult(
            status=response.status_code,
            body=response.text or "",
            url=str(response.url),
            headers={k.lower(): v for k, v in response.headers.items()},
            cookies=self._cookies(),
        )

    async def render(
        self,
        url: str,
        timeout_s: float | None = None,
        scrolls: int = 0,
    ) -> FetchResult:
        """
        Render a page in headless Chromium and return the final HTML.

        Heavy resources are blocked, cookie banners dismissed, and the page
        is scrolled `scrolls` times to trigger lazy-loaded content.

        Raises:
            NetworkFailure: Browser error or navigation timeout
        """
        timeout_ms = int(timeout_s * 1000) if timeout_s else self.config.browser_timeout_ms

        async with async_playwright() as p:
            launch_options = {
                "headless": self.config.headless,
                "args": ["--disable-gpu", "--no-sandbox", "--disable-dev-shm-usage"],
            }
            if self._identity.proxy:
                launch_options["proxy"] = _playwright_proxy(self._identity.proxy)

            browser = await p.chromium.launch(**launch_options)
            try:
                context = await browser.new_context(
                    user_agent=self._identity.user_agent or self.config.user_agents[0],
                    locale="en-US",
                    viewport={"width": 1280, "height": 900},
                )
                await context.route("**/*", _route_filter)
                page = await context.new_page()

                response = await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                if response is None:
                    raise NetworkFailure(f"No response received: {url}")

                await self._dismiss_cookie_banner(page)
                await page.wait_for_timeout(3000)

                for _ in range(scrolls):
                    await page.evaluate("window.scrollBy(0, window.innerHeight * 1.5)")
                    await page.wait_for_timeout(1500 + random.randint(0, 1000))

                html = await page.content()
                return FetchResult(
                    status=response.status,
                    body=html,
                    url=page.url,
                    headers={k.lower(): v for k, v in response.headers.items()},
                )
            except PlaywrightError as e:
                raise NetworkFailure(f"Browser error: {e}") from e
            finally:
                await browser.close()

    async def _dismiss_cookie_banner(self, page) -> None:
        """Best-effort click on the first visible consent button."""
        for selector in COOKIE_ACCEPT_SELECTORS:
            try:
                button = await page.query_selector(selector)
                if button and await button.is_visible():
                    await button.click()
                    await page.wait_for_timeout(1000)
                    return
            except PlaywrightError:
                continue

    async def aclose(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


class DefaultNetworkProvider:
    """NetworkAccessProvider minting an HttpNetwork per identity."""

    def __init__(self, config: ScraperConfig | None = None, proxies: ProxyProvider | None = None):
        self.config = config or ScraperConfig()
        proxies = proxies or ProxyProvider(self.config.proxy_urls, self.config.proxy_mode)
        self.pool = IdentityPool(proxies, self.config.impersonate, self.config.user_agents)

    async def acquire(self, fresh: bool = False) -> HttpNetwork:
        identity = await self.pool.acquire(fresh=fresh)
        return HttpNetwork(identity, self.config)
