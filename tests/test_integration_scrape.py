"""
Integration tests - live scraping against real public profiles.

These tests require internet and should be run sparingly to avoid rate limiting.

Run with: pytest tests/test_integration_scrape.py -m integration -v
"""

import pytest

from socialprobe import Scraper, ScraperConfig

# Mark all tests in this module as integration tests (slow, requires internet)
pytestmark = pytest.mark.integration

TEST_PROFILES = [
    ("instagram", "nasa"),
    ("instagram", "natgeo"),
    ("facebook", "NASA"),
]


def validate_posts(posts: list) -> list[str]:
    """
    Validate post data meets requirements.

    Returns list of validation errors (empty if all pass).
    """
    errors = []
    urls = [p.url for p in posts if p.url]
    if len(urls) != len(set(urls)):
        errors.append(f"Duplicate post URLs: {urls}")

    dated = [p.rank_date for p in posts if p.rank_date is not None]
    if dated != sorted(dated, reverse=True):
        errors.append(f"Dated posts not newest first: {dated}")

    for p in posts:
        if len(p.caption_snippet) > 300:
            errors.append(f"Caption longer than 300 characters: {p.url}")
        if p.likes is not None and p.likes < 0:
            errors.append(f"Negative like count: {p.url}")
    return errors


@pytest.mark.asyncio
@pytest.mark.parametrize("platform,handle", TEST_PROFILES)
async def test_live_profile(platform, handle):
    """Scrape a live profile and validate the composite."""
    async with Scraper(ScraperConfig()) as scraper:
        result = await scraper.scrape(platform, handle, post_limit=6)

    if not result.success:
        pytest.skip(f"{platform}/{handle} not reachable from this network: {result.error}")

    assert result.sources
    assert len(result.posts) <= 6
    assert result.followers is None or result.followers > 0
    assert validate_posts(result.posts) == []
