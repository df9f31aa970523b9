"""Configuration management using Pydantic Settings."""

from enum import Enum

from pydantic_settings import BaseSettings


class Platform(str, Enum):
    """Supported social platforms."""
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"


class ProxyMode(str, Enum):
    """Proxy selection strategy."""
    ROUND_ROBIN = "round_robin"
    RANDOM = "random"
    NONE = "none"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


class ScraperConfig(BaseSettings):
    """Configuration for the socialprobe extraction engine."""

    # Browser settings
    headless: bool = True
    browser_timeout_ms: int = 60000
    render_scrolls: int = 3

    # HTTP settings
    request_timeout_s: float = 30.0
    bootstrap_timeout_s: float = 15.0
    impersonate: list[str] = ["chrome124", "chrome120", "safari17_0"]
    user_agents: list[str] = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    ]

    # Proxy settings
    proxy_mode: ProxyMode = ProxyMode.NONE
    proxy_urls: list[str] = []

    # Pacing
    bootstrap_delay_min_ms: int = 1500
    bootstrap_delay_max_ms: int = 3000
    request_delay_min_ms: int = 2000
    request_delay_max_ms: int = 5000

    # Retry settings
    rate_limit_backoff_s: float = 5.0

    # Extraction
    default_post_limit: int = 12
    window_before: int = 500
    window_after: int = 3000
    staleness_days: int = 365
    snippet_length: int = 300
    caption_key_length: int = 60

    # Logging
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.CONSOLE

    model_config = {
        "env_prefix": "SOCIALPROBE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }
