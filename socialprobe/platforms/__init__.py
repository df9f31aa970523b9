"""Per-platform strategy cascades."""

from typing import Callable

from socialprobe.config import Platform, ScraperConfig
from socialprobe.exceptions import ConfigError
from socialprobe.platforms import facebook, instagram
from socialprobe.platforms.base import PlatformSpec, Strategy

PLATFORMS: dict[Platform, Callable[[ScraperConfig], PlatformSpec]] = {
    Platform.INSTAGRAM: instagram.build_platform,
    Platform.FACEBOOK: facebook.build_platform,
}


def get_platform(name: Platform | str, config: ScraperConfig) -> PlatformSpec:
    """
    Build the strategy cascade for a platform.

    Raises:
        ConfigError: Unknown platform name
    """
    try:
        platform = Platform(name)
    except ValueError as e:
        supported = ", ".join(p.value for p in Platform)
        raise ConfigError(f"Unknown platform {name!r} (supported: {supported})") from e
    return PLATFORMS[platform](config)


__all__ = ["PLATFORMS", "PlatformSpec", "Strategy", "get_platform"]
