"""Live validation script - run the cascades against real public profiles."""

import asyncio
from pathlib import Path
from datetime import datetime

from socialprobe import Scraper, ScraperConfig
from socialprobe.core.fetcher import DefaultNetworkProvider
from socialprobe.exceptions import NetworkFailure
from socialprobe.platforms import facebook, instagram

# Test profiles
TARGETS = [
    ("instagram", "nasa"),
    ("instagram", "natgeo"),
    ("facebook", "NASA"),
    ("facebook", "natgeo"),
]

PAGE_URLS = {
    "instagram": lambda handle: instagram.PROFILE_URL.format(handle=handle),
    "facebook": facebook.page_url,
}

FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures" / "live"


async def save_page(provider: DefaultNetworkProvider, platform: str, handle: str) -> None:
    """Save the raw page HTML so new markup can become a test fixture."""
    net = await provider.acquire()
    try:
        response = await net.fetch(PAGE_URLS[platform](handle))
    except NetworkFailure as e:
        print(f"❌ Raw fetch failed: {e}")
        return
    finally:
        await net.aclose()

    FIXTURES_DIR.mkdir(parents=True, exist_ok=True)
    fixture_path = FIXTURES_DIR / f"{platform}_{handle}.html"
    fixture_path.write_text(response.body, encoding="utf-8")
    print(f"✓ Saved fixture: {fixture_path} (HTTP {response.status}, {len(response.body)} bytes)")


async def validate_target(scraper: Scraper, platform: str, handle: str) -> dict:
    """Scrape and report a single profile."""
    print(f"\n{'='*60}")
    print(f"Scraping {platform}/{handle}...")
    print(f"{'='*60}")

    start = datetime.now()
    result = await scraper.scrape(platform, handle, post_limit=6)
    duration_ms = (datetime.now() - start).total_seconds() * 1000

    print(f"\n--- Profile Data ({duration_ms:.0f}ms) ---")
    print(f"  Followers: {result.followers}")
    print(f"  Following: {result.following}")
    print(f"  Posts: {result.posts_count}")
    print(f"  Bio: {result.bio[:80] + '...' if result.bio and len(result.bio) > 80 else result.bio}")
    print(f"  Sources: {', '.join(result.sources) or '-'}")

    print(f"\n--- Posts ({len(result.posts)} found) ---")
    for i, post in enumerate(result.posts[:3]):
        print(f"  [{i+1}] {post.url or '(no url)'}")
        print(f"      {post.caption_snippet[:60]}")
        print(f"      Likes: {post.likes} | Comments: {post.comments} | Date: {post.posted_at}")

    if result.error:
        print(f"\n  ⚠️  {result.error}")

    return {
        "target": f"{platform}/{handle}",
        "success": result.success,
        "posts": len(result.posts),
        "followers": result.followers,
        "duration_ms": duration_ms,
    }


async def main():
    """Run validation on all test profiles."""
    print("=" * 60)
    print("Live Validation")
    print("=" * 60)

    config = ScraperConfig()
    provider = DefaultNetworkProvider(config)
    results = []
    async with Scraper(config, provider=provider) as scraper:
        for platform, handle in TARGETS:
            await save_page(provider, platform, handle)
            results.append(await validate_target(scraper, platform, handle))
            await asyncio.sleep(2)

    # Summary
    print("\n" + "=" * 60)
    print("VALIDATION SUMMARY")
    print("=" * 60)

    success_count = sum(1 for r in results if r["success"])
    print(f"\nSuccess: {success_count}/{len(results)}")

    print("\n| Target | Followers | Posts | Duration |")
    print("|--------|-----------|-------|----------|")
    for r in results:
        duration = f"{r['duration_ms']:.0f}ms"
        print(f"| {r['target']:<18} | {str(r['followers']):<9} | {r['posts']:<5} | {duration:<8} |")


if __name__ == "__main__":
    asyncio.run(main())
