#!/usr/bin/env python3
"""
Refresh subscribed feeds and store new items.

Usage:
  python scripts/refresh_feeds.py            # refresh every feed once
  python scripts/refresh_feeds.py --stale    # only feeds not fetched recently
  python scripts/refresh_feeds.py --loop     # keep refreshing on the configured interval
"""
import argparse
import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from src.reader.config_loader import load_settings
from src.reader.refresh import FeedRefresher
from src.reader.storage import FeedStore


def main():
    parser = argparse.ArgumentParser(description="Refresh subscribed feeds")
    parser.add_argument("--stale", action="store_true", help="Only refresh feeds that are stale")
    parser.add_argument("--loop", action="store_true", help="Run until interrupted")
    args = parser.parse_args()

    settings = load_settings()
    store = FeedStore(settings.db_path, batch_size=settings.batch_size)
    store.init()

    refresher = FeedRefresher(
        store,
        delay_seconds=settings.refresh_delay_seconds,
        stale_after_seconds=settings.stale_after_seconds,
    )

    if args.loop:
        try:
            refresher.run_forever(interval_seconds=settings.refresh_interval_seconds)
        except KeyboardInterrupt:
            pass
        return

    report = refresher.refresh_stale() if args.stale else refresher.refresh_all()
    if report is None:
        print("A refresh is already running")
        return

    print(f"Refreshed {report.refreshed} feeds, {report.new_items} new items")
    for failure in report.failures:
        print(f"  failed: {failure.title or failure.url}: {failure.error}")


if __name__ == "__main__":
    main()
