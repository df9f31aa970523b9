"""socialprobe - public profile metrics and recent posts from social platforms."""

from socialprobe.models.post import PostRecord
from socialprobe.models.result import CompositeResult, JobRecord
from socialprobe.config import Platform, ScraperConfig
from socialprobe.core.orchestrator import Scraper, scrape
from socialprobe.core.exporter import to_json, to_dict, save_json, load_json

__version__ = "0.1.0"

__all__ = [
    # Main interface
    "Scraper",
    "ScraperConfig",
    "Platform",
    "scrape",
    # Models
    "PostRecord",
    "CompositeResult",
    "JobRecord",
    # Export utilities
    "to_json",
    "to_dict",
    "save_json",
    "load_json",
    "__version__",
]
