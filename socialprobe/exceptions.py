"""Custom exception hierarchy for socialprobe."""


class SocialProbeError(Exception):
    """Base exception for all socialprobe errors."""


class FetchError(SocialProbeError):
    """Failed to retrieve a payload."""


class NetworkFailure(FetchError):
    """Transport error or timeout before any response arrived."""


class HttpStatusFailure(FetchError):
    """Remote answered with a non-success status."""

    def __init__(self, status: int, message: str | None = None):
        self.status = status
        super().__init__(message or f"HTTP {status}")


class AuthRequired(HttpStatusFailure):
    """Page is reachable but login-walled."""


class RateLimited(HttpStatusFailure):
    """Detected rate limiting for the current network identity."""


class ParseError(SocialProbeError):
    """Failed to parse a payload."""


class MalformedPayload(ParseError):
    """Payload could not be decoded in the expected format."""


class NoFieldsFound(ParseError):
    """Payload decoded but nothing recognizable was in it."""


class ConfigError(SocialProbeError):
    """Invalid configuration."""
