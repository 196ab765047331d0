#!/usr/bin/env python3
"""
Subscribe to a feed and store its current items.
Usage: python scripts/add_feed.py https://example.com/feed.xml --folder News
"""
import argparse
import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from src.reader.config_loader import load_settings
from src.reader.errors import FeedError
from src.reader.pipeline import add_subscription
from src.reader.storage import FeedStore


def main():
    parser = argparse.ArgumentParser(description="Subscribe to an RSS/Atom/RDF feed")
    parser.add_argument("url", help="Feed URL (http:// or https://)")
    parser.add_argument("--folder", "-f", help="Folder name; created if it does not exist yet")
    args = parser.parse_args()

    settings = load_settings()
    store = FeedStore(settings.db_path, batch_size=settings.batch_size)
    store.init()

    folder_id = None
    new_folder_name = None
    if args.folder:
        folder_id = store.folder_id_by_name(args.folder)
        if folder_id is None:
            new_folder_name = args.folder

    try:
        feed_id = add_subscription(store, args.url, folder_id=folder_id, new_folder_name=new_folder_name)
    except FeedError as e:
        print(f"Error: {e}")
        sys.exit(1)

    feed = store.get_feed(feed_id, with_items=True)
    print(f"Added feed: {feed.title}")
    print(f"   URL: {feed.url}")
    print(f"   Items: {len(feed.items)}")


if __name__ == "__main__":
    main()
