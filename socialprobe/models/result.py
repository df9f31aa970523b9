"""Strategy outcome and composite result models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from socialprobe.models.post import PostRecord
from socialprobe.models.profile import PartialProfileResult


class OutcomeKind(str, Enum):
    """Classification of one strategy run."""
    RICH = "rich"
    PARTIAL = "partial"
    EMPTY = "empty"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Why a strategy run failed."""
    NETWORK = "network_failure"
    HTTP_STATUS = "http_status_failure"
    AUTH_REQUIRED = "auth_required"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed_payload"
    NO_FIELDS = "no_fields_found"
    UNEXPECTED = "unexpected"


@dataclass
class StrategyOutcome:
    """A partial result tagged with the strategy that produced it."""

    strategy: str
    kind: OutcomeKind
    result: PartialProfileResult | None = None
    failure: FailureKind | None = None
    detail: str | None = None
    identity: str | None = None

    @property
    def usable(self) -> bool:
        return self.kind in (OutcomeKind.RICH, OutcomeKind.PARTIAL)

    @property
    def retryable(self) -> bool:
        return self.failure == FailureKind.RATE_LIMITED

    def describe(self) -> str:
        """Short human-readable summary used in exhaustion errors."""
        return f"{self.strategy}: {self.detail or self.kind.value}"


class CompositeResult(BaseModel):
    """Final reconciled record for one profile query."""

    followers: int | None = None
    following: int | None = None
    posts_count: int | None = None
    bio: str | None = None
    posts: list[PostRecord] = []
    error: str | None = None
    sources: list[str] = []

    @property
    def success(self) -> bool:
        return self.error is None


class JobRecord(CompositeResult):
    """CompositeResult with the job metadata attached by the batch runner."""

    customer_slug: str
    name: str
    platform: str
    scraped_at: datetime

    @classmethod
    def from_result(
        cls,
        result: CompositeResult,
        customer_slug: str,
        name: str,
        platform: str,
        scraped_at: datetime | None = None,
    ) -> "JobRecord":
        return cls(
            customer_slug=customer_slug,
            name=name,
            platform=platform,
            scraped_at=scraped_at or datetime.now(),
            **result.model_dump(),
        )
