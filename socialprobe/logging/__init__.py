"""Logging setup."""

from socialprobe.logging.setup import configure_logging, get_logger, mask_proxy

__all__ = ["configure_logging", "get_logger", "mask_proxy"]
