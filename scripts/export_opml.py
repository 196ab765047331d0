#!/usr/bin/env python3
"""
Export subscriptions as OPML.
Usage: python scripts/export_opml.py --out subscriptions.opml
"""
import argparse
import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from src.reader.config_loader import load_settings
from src.reader.opml import export_opml
from src.reader.storage import FeedStore


def main():
    parser = argparse.ArgumentParser(description="Export feeds to OPML")
    parser.add_argument("--out", "-o", help="Output file (default: stdout)")
    args = parser.parse_args()

    settings = load_settings()
    store = FeedStore(settings.db_path, batch_size=settings.batch_size)
    store.init()

    text = export_opml(store.list_feeds(), store.list_folders())
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(text)
    else:
        sys.stdout.write(text)


if __name__ == "__main__":
    main()
