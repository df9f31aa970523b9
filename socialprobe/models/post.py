"""Post data model."""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field, field_validator

SNIPPET_LENGTH = 300


class MediaType(str, Enum):
    """Kind of media attached to a post."""
    IMAGE = "image"
    VIDEO = "video"


class PostRecord(BaseModel):
    """Represents one recent post with its engagement counters."""

    url: str = ""
    caption_snippet: str = ""
    likes: int | None = None
    comments: int | None = None
    posted_at: date | None = None
    media_type: MediaType | None = None

    # False when posted_at is in the future or beyond the staleness horizon
    date_reliable: bool = Field(default=True, exclude=True)

    @field_validator("caption_snippet", mode="before")
    @classmethod
    def _truncate_caption(cls, value: str | None) -> str:
        return (value or "")[:SNIPPET_LENGTH]

    @property
    def rank_date(self) -> date | None:
        """Date usable for recency ordering, None if absent or unreliable."""
        return self.posted_at if self.date_reliable else None
