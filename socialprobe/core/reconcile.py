"""Field-level reconciliation of partial results."""

from typing import Iterable, Sequence, TypeVar

from pydantic import BaseModel

from socialprobe.models.profile import PartialProfileResult, SCALAR_FIELDS
from socialprobe.models.result import CompositeResult

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

NO_DATA_ERROR = "No usable data recovered"


def first_non_null(values: Iterable[T | None]) -> T | None:
    """Return the first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def fill_missing(primary: M, *others: M, fields: Sequence[str] | None = None) -> M:
    """
    Copy of primary with its None fields filled from others, in order.

    Used wherever two observations of the same entity are combined: the
    earlier, more trusted one keeps every value it has.
    """
    names = fields if fields is not None else list(type(primary).model_fields)
    updates = {}
    for name in names:
        if getattr(primary, name) is None:
            value = first_non_null(getattr(other, name) for other in others)
            if value is not None:
                updates[name] = value
    return primary.model_copy(update=updates) if updates else primary


def merge(
    partials: Sequence[PartialProfileResult],
    post_limit: int | None = None,
    sources: Sequence[str] | None = None,
    error: str | None = None,
) -> CompositeResult:
    """
    Combine partial results ordered by decreasing trust.

    Scalars: first non-null value wins. Posts: the first non-empty post
    list is taken whole; lists from different partials are never mixed.

    Args:
        partials: Partial results, most trusted first
        post_limit: Truncate posts to this many entries
        sources: Strategy name for each partial, same order
        error: Error text used if nothing usable was merged

    Returns:
        CompositeResult; error is set only when it carries no data
    """
    scalars = {
        name: first_non_null(getattr(partial, name) for partial in partials)
        for name in SCALAR_FIELDS
    }

    posts = []
    for partial in partials:
        if partial.posts:
            posts = list(partial.posts)
            break
    if post_limit is not None:
        posts = posts[:post_limit]

    contributing = []
    if sources is not None:
        for name, partial in zip(sources, partials):
            if partial.has_usable_data and name not in contributing:
                contributing.append(name)

    has_data = bool(posts) or any(value is not None for value in scalars.values())
    return CompositeResult(
        **scalars,
        posts=posts,
        error=None if has_data else (error or NO_DATA_ERROR),
        sources=contributing if has_data else [],
    )
