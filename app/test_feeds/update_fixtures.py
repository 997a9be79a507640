#!/usr/bin/env python3
"""
Update test fixtures by downloading the live ranking.

Run from the app/ directory so the pipeline modules are importable.

Usage:
    # Discover the current endpoint with a headless browser, keep 3 episodes
    python test_feeds/update_fixtures.py

    # Skip discovery, keep 5 episodes, also save the first episode's page
    python test_feeds/update_fixtures.py --api-url=https://xyzrank.justinbot.com/assets/hot-episodes.abc123.json \
        --keep-episodes=5 --save-page
"""

import argparse
import json
from pathlib import Path

import requests

from tasks.audio import PAGE_HEADERS
from tasks.discover import discover_endpoint
from tasks.ranking import RANKING_HEADERS

RANKING_FIXTURE = 'hot-episodes.json'
PAGE_FIXTURE = 'episode_page.html'


def download_ranking(api_url: str) -> dict:
    r = requests.get(api_url, headers=RANKING_HEADERS, timeout=30)
    r.raise_for_status()
    return r.json()


def strip_ranking(payload: dict, keep_episodes: int) -> dict:
    """Keep only the first N episodes, leaving the rest of the payload alone."""
    episodes = payload['data']['episodes']
    payload['data']['episodes'] = episodes[:keep_episodes]
    print(f"  Stripped {len(episodes)} -> {len(payload['data']['episodes'])} episodes")
    return payload


def main():
    parser = argparse.ArgumentParser(
        description='Update test fixtures from the live xyzrank ranking.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--api-url', default=None,
                        help='Ranking URL to download (default: discover it with a headless browser)')
    parser.add_argument('--keep-episodes', type=int, default=3, metavar='N',
                        help='Strip the ranking to N episodes (default: 3)')
    parser.add_argument('--save-page', action='store_true',
                        help=f'Also save the first episode page as {PAGE_FIXTURE}')
    args = parser.parse_args()

    script_dir = Path(__file__).parent

    api_url = args.api_url or discover_endpoint.fn()
    print(f"{RANKING_FIXTURE}:")
    print(f"  Downloading from {api_url}")
    payload = strip_ranking(download_ranking(api_url), args.keep_episodes)

    dest = script_dir / RANKING_FIXTURE
    dest.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding='utf-8')
    print(f"  Final size: {dest.stat().st_size:,} bytes")

    if args.save_page:
        link = next((ep.get('link') for ep in payload['data']['episodes'] if ep.get('link')), None)
        if link is None:
            print("  No episode with a page link, skipping page fixture")
        else:
            print(f"\n{PAGE_FIXTURE}:")
            print(f"  Downloading from {link}")
            r = requests.get(link, headers=PAGE_HEADERS, timeout=30)
            r.raise_for_status()
            page_dest = script_dir / PAGE_FIXTURE
            page_dest.write_text(r.text, encoding='utf-8')
            print(f"  Downloaded {page_dest.stat().st_size:,} bytes")

    print("\nNote: the fixture tests expect the hand-written records; review the diff before committing.")
    print("\nDone!")


if __name__ == '__main__':
    main()
