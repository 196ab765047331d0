#!/usr/bin/env python3
"""
Stream an AI summary for a stored article and save it.
Usage: python scripts/summarize_item.py ITEM_ID
"""
import argparse
import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from src.reader.config_loader import load_settings
from src.reader.errors import SummarizeError
from src.reader.storage import FeedStore
from src.reader.summarize import SummaryClient


def main():
    parser = argparse.ArgumentParser(description="Summarize a stored article")
    parser.add_argument("item_id", help="Stored item id")
    args = parser.parse_args()

    settings = load_settings()
    store = FeedStore(settings.db_path, batch_size=settings.batch_size)
    store.init()

    item = store.get_item(args.item_id)
    if item is None:
        print(f"Unknown item: {args.item_id}")
        sys.exit(1)

    parts = []
    try:
        client = SummaryClient(settings.summarize_endpoint, max_chars=settings.summary_max_chars)
        for chunk in client.stream(item.content, item.title):
            sys.stdout.write(chunk)
            sys.stdout.flush()
            parts.append(chunk)
    except KeyboardInterrupt:
        print("\nCancelled")
        sys.exit(130)
    except SummarizeError as e:
        print(f"Error: {e}")
        sys.exit(1)

    summary = "".join(parts).strip()
    if summary:
        store.save_summary(item.id, summary)
    print()


if __name__ == "__main__":
    main()
