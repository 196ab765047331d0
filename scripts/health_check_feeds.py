#!/usr/bin/env python3
"""
Health check for all subscribed feeds.
Reports which feeds fetch and parse, and which are failing. Nothing is stored.

Usage: python scripts/health_check_feeds.py
"""
import os
import sys

if sys.platform == "win32":
    sys.stdout.reconfigure(encoding='utf-8')

CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from src.reader.assembler import default_http_client, fetch_and_parse_feed
from src.reader.config_loader import load_settings
from src.reader.storage import FeedStore


def check_feed(url: str, http) -> tuple[bool, int, str]:
    """Check if a feed is working. Returns (success, item_count, error_message)."""
    try:
        feed = fetch_and_parse_feed(url, http=http)
        return True, len(feed.items), ""
    except Exception as e:
        return False, 0, str(e)[:80]


def main():
    settings = load_settings()
    store = FeedStore(settings.db_path, batch_size=settings.batch_size)
    store.init()
    http = default_http_client()

    print("=" * 70)
    print("FEED HEALTH CHECK")
    print("=" * 70)

    working = []
    empty = []
    broken = []

    for feed in store.list_feeds():
        name = feed.title or feed.url
        success, count, error = check_feed(feed.url, http)
        if success and count > 0:
            working.append((name, count))
        elif success:
            empty.append(name)
        else:
            broken.append((name, error))

    print("\nWORKING FEEDS")
    print("-" * 50)
    for name, count in sorted(working, key=lambda x: -x[1]):
        print(f"  {name}: {count} items")

    print(f"\nEMPTY FEEDS ({len(empty)})")
    print("-" * 50)
    for name in empty:
        print(f"  {name}")

    print(f"\nBROKEN FEEDS ({len(broken)})")
    print("-" * 50)
    for name, error in broken:
        print(f"  {name}: {error}")

    print("\n" + "=" * 70)
    print(f"Summary: {len(working)} working, {len(empty)} empty, {len(broken)} broken")
    print("=" * 70)

    if len(broken) > len(working):
        print("\nWARNING: More feeds broken than working!")
        sys.exit(1)


if __name__ == "__main__":
    main()
