"""Strategy cascade controller.

Runs a platform's strategies strictly in priority order:

    PENDING -> STRATEGY[i] -> {SUCCESS, RETRY, NEXT} -> ... -> DONE

SUCCESS halts and merges with the partials carried so far, RETRY re-runs a
rate-limited strategy once on a fresh network identity, NEXT carries the
outcome's fields forward, DONE reports exhaustion.
"""

import asyncio

from socialprobe.config import ScraperConfig
from socialprobe.core.fetcher import NetworkAccessProvider
from socialprobe.core.ranking import rank_posts
from socialprobe.core.reconcile import merge
from socialprobe.logging import get_logger
from socialprobe.models.profile import PartialProfileResult
from socialprobe.models.result import CompositeResult, OutcomeKind, StrategyOutcome
from socialprobe.platforms.base import PlatformSpec, Strategy, run_strategy


class StrategyCascade:
    """Drives one platform's strategies for one query at a time."""

    def __init__(self, platform: PlatformSpec, config: ScraperConfig | None = None):
        self.platform = platform
        self.config = config or ScraperConfig()
        self._log = get_logger("cascade").bind(platform=platform.name)

    def _halts(self, outcome: StrategyOutcome, post_limit: int) -> bool:
        if not outcome.usable:
            return False
        # No posts were asked for, so none can be missing
        if self.platform.require_posts and post_limit > 0:
            return bool(outcome.result.posts)
        return True

    async def _attempt(
        self,
        strategy: Strategy,
        handle: str,
        post_limit: int,
        provider: NetworkAccessProvider,
        fresh: bool,
    ) -> StrategyOutcome:
        net = await provider.acquire(fresh=fresh)
        try:
            return await run_strategy(strategy, handle, post_limit, net)
        finally:
            await net.aclose()

    async def run_strategy_with_retry(
        self,
        strategy: Strategy,
        handle: str,
        post_limit: int,
        provider: NetworkAccessProvider,
    ) -> StrategyOutcome:
        """Run a strategy, retrying once on a fresh identity if rate limited."""
        outcome = await self._attempt(strategy, handle, post_limit, provider, fresh=False)
        if not outcome.retryable:
            return outcome

        self._log.info(
            "strategy_retry",
            strategy=strategy.name,
            handle=handle,
            backoff_s=self.config.rate_limit_backoff_s,
            previous_identity=outcome.identity,
        )
        if self.config.rate_limit_backoff_s > 0:
            await asyncio.sleep(self.config.rate_limit_backoff_s)
        return await self._attempt(strategy, handle, post_limit, provider, fresh=True)

    async def run(
        self,
        handle: str,
        post_limit: int,
        provider: NetworkAccessProvider,
    ) -> CompositeResult:
        """
        Run the cascade for one handle.

        Args:
            handle: Normalized handle or page id
            post_limit: Maximum posts in the result
            provider: Network access provider

        Returns:
            CompositeResult; never raises for fetch or parse failures
        """
        self._log.info("cascade_start", handle=handle, post_limit=post_limit)
        carried: list[tuple[str, PartialProfileResult]] = []
        outcomes: list[StrategyOutcome] = []

        for strategy in self.platform.strategies:
            outcome = await self.run_strategy_with_retry(strategy, handle, post_limit, provider)
            outcomes.append(outcome)
            self._log.info(
                "strategy_outcome",
                handle=handle,
                strategy=outcome.strategy,
                kind=outcome.kind.value,
                failure=outcome.failure.value if outcome.failure else None,
                posts=len(outcome.result.posts) if outcome.result else 0,
                identity=outcome.identity,
            )

            if outcome.usable:
                carried.append((outcome.strategy, outcome.result))
            if self._halts(outcome, post_limit):
                break

        result = self._compose(carried, outcomes, post_limit)
        self._log.info(
            "cascade_done",
            handle=handle,
            sources=result.sources,
            posts=len(result.posts),
            error=result.error,
        )
        return result

    def _compose(
        self,
        carried: list[tuple[str, PartialProfileResult]],
        outcomes: list[StrategyOutcome],
        post_limit: int,
    ) -> CompositeResult:
        composite = merge(
            [partial for _, partial in carried],
            sources=[name for name, _ in carried],
            error=exhaustion_error(self.platform.name, outcomes),
        )
        return composite.model_copy(update={"posts": rank_posts(composite.posts)[:post_limit]})


def exhaustion_error(platform: str, outcomes: list[StrategyOutcome]) -> str:
    """Descriptive error naming what each strategy ran into."""
    if not outcomes:
        return f"No strategies configured for {platform}"
    if all(o.kind == OutcomeKind.EMPTY for o in outcomes):
        prefix = "No recognizable data"
    else:
        prefix = "All strategies failed"
    return f"{prefix} ({platform}): " + "; ".join(o.describe() for o in outcomes)
