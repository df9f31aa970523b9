"""Batch job input model."""

from pydantic import BaseModel, Field, field_validator

from socialprobe.config import Platform


class CompetitorInput(BaseModel):
    """One competitor and its handle on each platform it is tracked on."""

    name: str
    instagram: str | None = None
    facebook: str | None = None

    def targets(self) -> list[tuple[Platform, str]]:
        """(platform, handle) pairs for the platforms that have a handle."""
        pairs = []
        for platform in Platform:
            handle = getattr(self, platform.value)
            if handle:
                pairs.append((platform, handle))
        return pairs


class BatchInput(BaseModel):
    """A batch of competitors scraped for one customer."""

    customer_slug: str = Field(min_length=1)
    competitors: list[CompetitorInput] = Field(min_length=1)
    posts_per_profile: int = Field(default=12, ge=0)

    @field_validator("customer_slug")
    @classmethod
    def _strip_slug(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("customer_slug must not be blank")
        return value
