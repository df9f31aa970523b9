"""Pipeline orchestrator - resolves the platform cascade and runs queries."""

import asyncio
from typing import AsyncIterator

from socialprobe.config import Platform, ScraperConfig
from socialprobe.core.cascade import StrategyCascade
from socialprobe.core.fetcher import DefaultNetworkProvider, NetworkAccessProvider
from socialprobe.exceptions import ConfigError, SocialProbeError
from socialprobe.logging import get_logger, configure_logging
from socialprobe.models.query import ProfileQuery
from socialprobe.models.job import BatchInput
from socialprobe.models.result import CompositeResult, JobRecord
from socialprobe.platforms import get_platform
from socialprobe.platforms.base import pause_seconds


async def scrape(
    platform: Platform | str,
    handle: str,
    post_limit: int,
    provider: NetworkAccessProvider,
    config: ScraperConfig | None = None,
) -> CompositeResult:
    """
    Extract one profile's public metrics and recent posts.

    Args:
        platform: "instagram" or "facebook"
        handle: Handle, @handle, page id or profile URL
        post_limit: Maximum posts in the result
        provider: Hands out network identities for each strategy attempt
        config: ScraperConfig instance, uses defaults if None

    Returns:
        CompositeResult; fetch and parse failures end up in its error field

    Raises:
        ConfigError: Unknown platform or empty handle, before any request
    """
    config = config or ScraperConfig()
    spec = get_platform(platform, config)
    query = ProfileQuery.create(platform, handle, post_limit, provider)
    if not query.handle:
        raise ConfigError(f"Empty handle: {handle!r}")

    return await StrategyCascade(spec, config).run(query.handle, query.post_limit, query.network_access)


class Scraper:
    """
    High-level scraper interface with proxy and identity rotation.

    Example:
        async with Scraper() as scraper:
            result = await scraper.scrape("instagram", "examplebrand")
            print(result.followers)
    """

    def __init__(
        self,
        config: ScraperConfig | None = None,
        provider: NetworkAccessProvider | None = None,
    ):
        """
        Initialize scraper with optional configuration.

        Args:
            config: ScraperConfig instance, uses defaults if None
            provider: Network access provider, DefaultNetworkProvider if None
        """
        self.config = config or ScraperConfig()
        self._provider = provider
        self._log = get_logger("scraper")

    async def __aenter__(self) -> "Scraper":
        """Async context manager entry - configure logging."""
        configure_logging(self.config)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Network handles are released per attempt, nothing to clean up."""

    @property
    def provider(self) -> NetworkAccessProvider:
        if self._provider is None:
            self._provider = DefaultNetworkProvider(self.config)
        return self._provider

    async def _pause(self) -> None:
        delay = pause_seconds(self.config.request_delay_min_ms, self.config.request_delay_max_ms)
        if delay:
            await asyncio.sleep(delay)

    async def scrape(
        self,
        platform: Platform | str,
        handle: str,
        post_limit: int | None = None,
    ) -> CompositeResult:
        """
        Scrape a single profile.

        Args:
            platform: "instagram" or "facebook"
            handle: Handle, page id or profile URL
            post_limit: Maximum posts (config default if None)

        Returns:
            CompositeResult with profile fields and recent posts
        """
        limit = post_limit if post_limit is not None else self.config.default_post_limit
        platform_name = getattr(platform, "value", platform)
        self._log.info("scrape_start", platform=platform_name, handle=handle, post_limit=limit)
        result = await scrape(platform, handle, limit, self.provider, self.config)
        self._log.info(
            "scrape_complete",
            platform=platform_name,
            handle=handle,
            posts=len(result.posts),
            success=result.success,
        )
        return result

    async def scrape_many(
        self,
        queries: list[tuple[Platform | str, str]],
        post_limit: int | None = None,
    ) -> list[CompositeResult]:
        """
        Scrape multiple profiles sequentially with a randomized delay.

        Args:
            queries: (platform, handle) pairs
            post_limit: Maximum posts per profile (config default if None)

        Returns:
            List of CompositeResults in same order as input
        """
        results = []

        for i, (platform, handle) in enumerate(queries):
            results.append(await self.scrape(platform, handle, post_limit))

            # Delay between profiles (except after last)
            if i < len(queries) - 1:
                await self._pause()

        return results

    async def run_batch(self, batch: BatchInput) -> AsyncIterator[JobRecord]:
        """
        Scrape every competitor handle in a batch, one JobRecord per handle.

        A handle that cannot be queried at all (e.g. an empty one) still
        yields a record carrying the error, so the output lines up with
        the input.
        """
        targets = [
            (competitor, platform, handle)
            for competitor in batch.competitors
            for platform, handle in competitor.targets()
        ]
        self._log.info("batch_start", customer_slug=batch.customer_slug, targets=len(targets))

        for i, (competitor, platform, handle) in enumerate(targets):
            try:
                result = await self.scrape(platform, handle, batch.posts_per_profile)
            except SocialProbeError as e:
                self._log.error("scrape_failed", name=competitor.name, platform=platform.value, error=str(e))
                result = CompositeResult(error=str(e))

            yield JobRecord.from_result(
                result,
                customer_slug=batch.customer_slug,
                name=competitor.name,
                platform=platform.value,
            )

            if i < len(targets) - 1:
                await self._pause()
