from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional

from .assembler import fetch_and_parse_feed
from .errors import DuplicateSubscription, FeedError, FeedParseError, FetchError, InvalidFeedUrl, UnsupportedFormat
from .logging_utils import log_error, log_event
from .models import Feed, OpmlOutline, new_id
from .storage import FeedStore

FetchFn = Callable[[str], Feed]


def validate_feed_url(url: str) -> str:
    url = (url or "").strip()
    if not (url.startswith("http://") or url.startswith("https://")):
        raise InvalidFeedUrl(url)
    return url


def fetch_feed(url: str, fetch: FetchFn = fetch_and_parse_feed) -> Feed:
    try:
        return fetch(url)
    except FetchError:
        raise
    except (FeedParseError, UnsupportedFormat) as e:
        raise type(e)(f"Failed to fetch feed: {e}") from e
    except FeedError:
        raise
    except Exception as e:
        raise FeedError(f"Failed to fetch feed: {e}") from e


def refresh_feed(url: str, fetch: FetchFn = fetch_and_parse_feed) -> Feed:
    return fetch_feed(url, fetch)


def add_subscription(
    store: FeedStore,
    url: str,
    *,
    folder_id: Optional[str] = None,
    new_folder_name: Optional[str] = None,
    fetch: FetchFn = fetch_and_parse_feed,
) -> str:
    url = validate_feed_url(url)
    if store.check_url_exists(url):
        raise DuplicateSubscription(url)

    feed = fetch_feed(url, fetch)

    if new_folder_name and new_folder_name.strip():
        folder_id = store.add_folder(new_folder_name.strip())

    feed_id = store.add_feed(replace(feed, folder_id=folder_id))
    log_event("feed_added", feed_id=feed_id, url=url, items=len(feed.items), folder_id=folder_id)
    return feed_id


@dataclass
class ImportReport:
    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


def _outline_feed(outline: OpmlOutline) -> Feed:
    return Feed(
        id=new_id(),
        title=outline.title,
        url=outline.xml_url,
        link=outline.html_url or "",
        description="",
    )


def import_opml_subscriptions(
    store: FeedStore,
    outlines: Iterable[OpmlOutline],
    *,
    fetch: FetchFn = fetch_and_parse_feed,
    fetch_items: bool = True,
) -> ImportReport:
    """Subscribe to every new outline, mapping OPML folders onto stored folders.

    With ``fetch_items=False`` only the subscription rows are written; they
    have no ``last_fetched`` yet, so the next stale refresh picks them up.
    """
    report = ImportReport()
    existing = store.existing_feed_urls()
    folder_ids: dict[str, str] = {f.name.lower(): f.id for f in store.list_folders()}

    def folder_for(name: Optional[str]) -> Optional[str]:
        if not name:
            return None
        key = name.lower()
        if key not in folder_ids:
            folder_ids[key] = store.add_folder(name)
        return folder_ids[key]

    for outline in outlines:
        if outline.xml_url in existing:
            report.skipped.append(outline.xml_url)
            continue

        try:
            if fetch_items:
                feed = fetch_feed(outline.xml_url, fetch)
                feed_id = store.add_feed(replace(feed, folder_id=folder_for(outline.folder)))
            else:
                feed = replace(_outline_feed(outline), folder_id=folder_for(outline.folder))
                (feed_id,) = store.import_feeds([feed])
        except Exception as e:
            report.failed[outline.xml_url] = str(e)
            log_error("opml_import_item_error", url=outline.xml_url, title=outline.title, error=str(e))
            continue

        existing.add(outline.xml_url)
        report.added.append(feed_id)

    log_event(
        "opml_import_done",
        added=len(report.added),
        skipped=len(report.skipped),
        failed=len(report.failed),
        fetched=fetch_items,
    )
    return report
