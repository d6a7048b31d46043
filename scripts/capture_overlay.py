"""Live check - scan real follower lists and save overlay HTML as test fixtures.

Usage:
    FOLLOWDIFF_STORAGE_STATE_PATH=state.json python scripts/capture_overlay.py profile.one profile.two
"""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

from followdiff.config import StoreBackend, TrackerConfig
from followdiff.core.browser import open_profile_page
from followdiff.core.extractor import RowExtractor
from followdiff.core.rate_limiter import RateLimiter
from followdiff.core.scraper import VirtualizedListScraper
from followdiff.exceptions import ScanSetupError

FIXTURES_DIR = Path(__file__).parent.parent / "tests" / "fixtures"


async def capture_profile(username: str, config: TrackerConfig, save_fixture: bool = True) -> dict:
    """Scan one follower list, saving the overlay as first rendered."""
    print(f"\n{'='*60}")
    print(f"Scanning @{username}...")
    print(f"{'='*60}")

    start = datetime.now()

    try:
        async with open_profile_page(username, config) as page:
            scraper = VirtualizedListScraper(page, config)
            scraper.session.begin()

            await scraper._open_overlay()
            html = await page.overlay_html()
            if save_fixture and html:
                FIXTURES_DIR.mkdir(parents=True, exist_ok=True)
                fixture_path = FIXTURES_DIR / f"{username}_dialog.html"
                fixture_path.write_text(html, encoding="utf-8")
                print(f"✓ Saved fixture: {fixture_path}")

            visible = RowExtractor(page.base_url).parse(html or "")
            print(f"✓ Overlay open, {len(visible)} rows rendered")

            result = await scraper.run()
    except ScanSetupError as e:
        print(f"❌ Scan failed: {e}")
        return {"username": username, "success": False, "error": str(e)}

    duration_ms = (datetime.now() - start).total_seconds() * 1000
    named = sum(1 for f in result.followers if f.full_name)

    print(f"\n--- Followers ({len(result.followers)} found) ---")
    for f in result.followers[:3]:
        print(f"  @{f.username}  {f.full_name}")
    if len(result.followers) > 3:
        print(f"  ... and {len(result.followers) - 3} more")
    print(f"  Display names: {named}/{len(result.followers)}")
    print(f"  Pictures inlined: {result.pictures_inlined}")
    print(f"  Scroll cycles: {result.scroll_cycles}")

    return {
        "username": username,
        "success": not result.cancelled,
        "followers": len(result.followers),
        "cycles": result.scroll_cycles,
        "duration_ms": duration_ms,
    }


async def main(usernames: list[str]):
    config = TrackerConfig(store_backend=StoreBackend.MEMORY)
    if not config.storage_state_path:
        print("Set FOLLOWDIFF_STORAGE_STATE_PATH to a logged-in Playwright storage state")
        return

    pacing = RateLimiter(config.min_delay_ms, config.max_delay_ms)
    results = []
    for username in usernames:
        results.append(await capture_profile(username, config))
        await pacing.random_delay()

    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)

    print("\n| Username | Followers | Cycles | Duration |")
    print("|----------|-----------|--------|----------|")
    for r in results:
        followers = r.get("followers", "❌")
        duration = f"{r.get('duration_ms', 0):.0f}ms"
        print(f"| @{r['username']:<8} | {followers!s:<9} | {r.get('cycles', 0):<6} | {duration:<8} |")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(sys.argv[1:]))
