"""Pydantic models for socialprobe."""

from socialprobe.models.post import PostRecord, MediaType
from socialprobe.models.job import BatchInput, CompetitorInput
from socialprobe.models.profile import PartialProfileResult
from socialprobe.models.query import ProfileQuery
from socialprobe.models.result import (
    CompositeResult,
    FailureKind,
    JobRecord,
    OutcomeKind,
    StrategyOutcome,
)

__all__ = [
    "PostRecord",
    "MediaType",
    "PartialProfileResult",
    "ProfileQuery",
    "CompositeResult",
    "JobRecord",
    "StrategyOutcome",
    "OutcomeKind",
    "FailureKind",
    "BatchInput",
    "CompetitorInput",
]
