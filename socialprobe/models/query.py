"""Profile query model."""

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from socialprobe.config import Platform

if TYPE_CHECKING:
    from socialprobe.core.fetcher import NetworkAccessProvider


def normalize_handle(handle: str) -> str:
    """
    Reduce a handle, @handle or profile URL to the bare handle/page id.

    Examples:
        "@examplebrand" -> "examplebrand"
        "https://www.instagram.com/examplebrand/" -> "examplebrand"
        "https://www.facebook.com/profile.php?id=100064" -> "profile.php?id=100064"
    """
    handle = handle.strip()
    if "://" in handle or handle.startswith("www."):
        parsed = urlparse(handle if "://" in handle else f"https://{handle}")
        segments = [s for s in parsed.path.split("/") if s]
        if not segments:
            return ""
        if segments[0] == "profile.php" and parsed.query:
            return f"profile.php?{parsed.query}"
        handle = segments[0]
    return handle.strip("/").lstrip("@")


@dataclass(frozen=True)
class ProfileQuery:
    """One target on one platform, immutable for the duration of a cascade."""

    platform: Platform
    handle: str
    post_limit: int
    network_access: "NetworkAccessProvider"

    @classmethod
    def create(
        cls,
        platform: Platform | str,
        handle: str,
        post_limit: int,
        network_access: "NetworkAccessProvider",
    ) -> "ProfileQuery":
        return cls(
            platform=Platform(platform),
            handle=normalize_handle(handle),
            post_limit=max(0, post_limit),
            network_access=network_access,
        )
