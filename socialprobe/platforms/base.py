"""Strategy contract shared by every platform."""

import json
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from bs4 import BeautifulSoup

from socialprobe.core.fetcher import FetchResult, NetworkAccess
from socialprobe.exceptions import (
    AuthRequired,
    HttpStatusFailure,
    MalformedPayload,
    NetworkFailure,
    NoFieldsFound,
    RateLimited,
    SocialProbeError,
)
from socialprobe.logging import get_logger
from socialprobe.models.profile import PartialProfileResult
from socialprobe.models.result import FailureKind, OutcomeKind, StrategyOutcome

StrategyFn = Callable[[str, int, NetworkAccess], Awaitable[PartialProfileResult | None]]

_log = get_logger("strategy")

_FAILURE_KINDS: list[tuple[type[SocialProbeError], FailureKind]] = [
    (RateLimited, FailureKind.RATE_LIMITED),
    (AuthRequired, FailureKind.AUTH_REQUIRED),
    (HttpStatusFailure, FailureKind.HTTP_STATUS),
    (NetworkFailure, FailureKind.NETWORK),
    (MalformedPayload, FailureKind.MALFORMED),
    (NoFieldsFound, FailureKind.NO_FIELDS),
]


@dataclass(frozen=True)
class Strategy:
    """A named retrieval+parse step in a platform cascade."""

    name: str
    fn: StrategyFn


@dataclass(frozen=True)
class PlatformSpec:
    """Ordered strategies for one platform, cheapest and richest first."""

    name: str
    strategies: list[Strategy] = field(default_factory=list)
    # Profile-only outcomes are carried forward instead of halting
    require_posts: bool = False


def classify(result: PartialProfileResult | None) -> OutcomeKind:
    """
    Classify a strategy's return value.

    rich: posts and follower count; partial: any other usable data;
    empty: None or nothing observed.
    """
    if result is None or not result.has_usable_data:
        return OutcomeKind.EMPTY
    if result.posts and result.followers is not None:
        return OutcomeKind.RICH
    return OutcomeKind.PARTIAL


def failure_kind(error: SocialProbeError) -> FailureKind:
    for error_type, kind in _FAILURE_KINDS:
        if isinstance(error, error_type):
            return kind
    return FailureKind.UNEXPECTED


async def run_strategy(
    strategy: Strategy,
    handle: str,
    post_limit: int,
    net: NetworkAccess,
) -> StrategyOutcome:
    """
    Run one strategy and classify what it produced. Never raises.

    Fetch and parse errors become FAILED outcomes tagged with their kind;
    NoFieldsFound is an EMPTY outcome.
    """
    identity = getattr(net, "identity", None)
    try:
        result = await strategy.fn(handle, post_limit, net)
    except NoFieldsFound as e:
        return StrategyOutcome(
            strategy=strategy.name,
            kind=OutcomeKind.EMPTY,
            failure=FailureKind.NO_FIELDS,
            detail=str(e),
            identity=identity,
        )
    except SocialProbeError as e:
        return StrategyOutcome(
            strategy=strategy.name,
            kind=OutcomeKind.FAILED,
            result=PartialProfileResult(error=str(e)),
            failure=failure_kind(e),
            detail=str(e),
            identity=identity,
        )
    except Exception as e:
        _log.exception("strategy_crashed", strategy=strategy.name, handle=handle)
        return StrategyOutcome(
            strategy=strategy.name,
            kind=OutcomeKind.FAILED,
            result=PartialProfileResult(error=f"Unexpected error: {e}"),
            failure=FailureKind.UNEXPECTED,
            detail=f"unexpected error: {e}",
            identity=identity,
        )

    return StrategyOutcome(
        strategy=strategy.name,
        kind=classify(result),
        result=result,
        identity=identity,
    )


# Shared helpers for platform modules


def check_response(
    response: FetchResult,
    login_markers: tuple[str, ...] = ("/login",),
    label: str = "",
) -> None:
    """
    Raise the taxonomy error matching a response, or return if usable.

    Raises:
        RateLimited: HTTP 429, or 401 with a "please wait" body
        AuthRequired: HTTP 401/403, or redirected to a login page
        HttpStatusFailure: Any other status >= 400
    """
    prefix = f"{label} " if label else ""
    status = response.status
    if status == 429 or (status == 401 and "wait a few minutes" in response.body.lower()):
        raise RateLimited(status, f"{prefix}HTTP {status} (rate limited)")
    if status in (401, 403):
        raise AuthRequired(status, f"{prefix}HTTP {status} (login required)")
    if status >= 400:
        raise HttpStatusFailure(status, f"{prefix}HTTP {status}")
    if any(marker in response.url for marker in login_markers):
        raise AuthRequired(status, f"{prefix}redirected to login")


def load_json(body: str, label: str = "payload") -> dict:
    """Decode a JSON object body, raising MalformedPayload otherwise."""
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedPayload(f"{label} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MalformedPayload(f"{label} is not a JSON object")
    return data


def meta_content(html: str, *keys: str) -> str | None:
    """First non-empty content of <meta property=key> or <meta name=key>."""
    soup = BeautifulSoup(html, "lxml")
    for key in keys:
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        if tag and tag.get("content"):
            return tag["content"]
    return None


def pause_seconds(min_ms: int, max_ms: int) -> float:
    """Randomized pause length between two requests."""
    if max_ms <= 0:
        return 0.0
    return random.randint(min(min_ms, max_ms), max_ms) / 1000
