#!/usr/bin/env python3
"""
List stored articles.
Usage: python scripts/list_items.py [--feed URL] [--mode unread|starred|all] [--order newest|oldest]
"""
import argparse
import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from src.reader.config_loader import load_settings
from src.reader.storage import FILTER_MODES, SORT_ORDERS, FeedStore


def main():
    parser = argparse.ArgumentParser(description="List stored articles")
    parser.add_argument("--feed", help="Only items from the feed with this URL")
    parser.add_argument("--mode", choices=FILTER_MODES, default="all")
    parser.add_argument("--order", choices=SORT_ORDERS, default="newest")
    parser.add_argument("--limit", type=int, default=30)
    args = parser.parse_args()

    settings = load_settings()
    store = FeedStore(settings.db_path, batch_size=settings.batch_size)
    store.init()

    feed_id = None
    if args.feed:
        feed = store.get_feed_by_url(args.feed)
        if feed is None:
            print(f"Not subscribed: {args.feed}")
            sys.exit(1)
        feed_id = feed.id

    for item in store.list_items(feed_id, mode=args.mode, order=args.order)[: args.limit]:
        flags = ("*" if item.is_starred else " ") + (" " if item.is_read else "N")
        print(f"{flags} {item.pub_date or '-':<32} {item.title}")
        print(f"     {item.link}")


if __name__ == "__main__":
    main()
