"""Partial profile data model."""

from pydantic import BaseModel, field_validator

from socialprobe.models.post import PostRecord, SNIPPET_LENGTH

SCALAR_FIELDS = ("followers", "following", "posts_count", "bio")


class PartialProfileResult(BaseModel):
    """What one strategy observed about a profile. Unobserved fields stay None."""

    followers: int | None = None
    following: int | None = None
    posts_count: int | None = None
    bio: str | None = None
    posts: list[PostRecord] = []
    error: str | None = None

    @field_validator("bio", mode="before")
    @classmethod
    def _truncate_bio(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value[:SNIPPET_LENGTH] or None

    @property
    def has_profile_fields(self) -> bool:
        return any(getattr(self, name) is not None for name in SCALAR_FIELDS)

    @property
    def has_usable_data(self) -> bool:
        """At least one post or one observed profile field."""
        return bool(self.posts) or self.has_profile_fields
