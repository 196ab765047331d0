#!/usr/bin/env python3
"""
Import subscriptions from an OPML file.
Usage: python scripts/import_opml.py subscriptions.opml [--no-fetch]
"""
import argparse
import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from src.reader.config_loader import load_settings
from src.reader.errors import OpmlError
from src.reader.opml import parse_opml
from src.reader.pipeline import import_opml_subscriptions
from src.reader.storage import FeedStore


def main():
    parser = argparse.ArgumentParser(description="Import feeds from OPML")
    parser.add_argument("path", help="Path to the .opml file")
    parser.add_argument(
        "--no-fetch",
        action="store_true",
        help="Only store the subscriptions; items arrive with the next refresh",
    )
    args = parser.parse_args()

    with open(args.path, "r", encoding="utf-8") as f:
        text = f.read()

    try:
        outlines = parse_opml(text)
    except OpmlError as e:
        print(f"Failed to parse OPML: {e}")
        sys.exit(1)

    settings = load_settings()
    store = FeedStore(settings.db_path, batch_size=settings.batch_size)
    store.init()

    report = import_opml_subscriptions(store, outlines, fetch_items=not args.no_fetch)
    print(f"Imported {len(report.added)} feeds ({len(report.skipped)} already subscribed, {len(report.failed)} failed)")
    for url, error in report.failed.items():
        print(f"  {url}: {error}")


if __name__ == "__main__":
    main()
