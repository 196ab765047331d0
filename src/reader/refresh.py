from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from dateutil import parser as date_parser

from .logging_utils import log_error, log_event
from .models import Feed, FeedItem
from .pipeline import refresh_feed
from .storage import FeedStore, FeedStorePort

REFRESH_INTERVAL_SECONDS = 15 * 60
STALE_AFTER_SECONDS = 5 * 60
REFRESH_DELAY_SECONDS = 0.5


def _now() -> datetime:
    return datetime.now(timezone.utc)


def select_new_items(fetched: Iterable[FeedItem], existing_links: set[str]) -> list[FeedItem]:
    # Only persisted links count; duplicates inside one fetch are all kept.
    return [i for i in fetched if i.link not in existing_links]


def apply_refresh(store: FeedStorePort, feed_id: str, fetched: list[FeedItem], now: Optional[str] = None) -> int:
    """Insert the fetched items the feed does not have yet and stamp last_fetched.

    Existing rows are never touched, so read/starred/summary survive any number
    of refreshes.
    """
    new_items = select_new_items(fetched, store.existing_links(feed_id))
    if new_items:
        store.batch_insert_items(feed_id, new_items)
    store.touch_last_fetched(feed_id, now or _now().isoformat())
    return len(new_items)


@dataclass(frozen=True)
class PartialRefreshFailure:
    feed_id: str
    url: str
    title: str
    error: str


@dataclass
class RefreshReport:
    started_at: str
    finished_at: str = ""
    refreshed: int = 0
    new_items: int = 0
    failures: list[PartialRefreshFailure] = field(default_factory=list)


def is_stale(feed: Feed, now: datetime, stale_after_seconds: float) -> bool:
    if not feed.last_fetched:
        return True
    try:
        fetched_at = date_parser.isoparse(feed.last_fetched)
    except ValueError:
        return True
    if fetched_at.tzinfo is None:
        fetched_at = fetched_at.replace(tzinfo=timezone.utc)
    return (now - fetched_at).total_seconds() > stale_after_seconds


class FeedRefresher:
    """Refreshes subscribed feeds one after another, with a pause between feeds.

    Only one refresh cycle runs at a time. A refresh requested while another
    is in flight is dropped, not queued.
    """

    def __init__(
        self,
        store: FeedStore,
        fetch: Callable[[str], Feed] = refresh_feed,
        delay_seconds: float = REFRESH_DELAY_SECONDS,
        stale_after_seconds: float = STALE_AFTER_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.fetch = fetch
        self.delay_seconds = delay_seconds
        self.stale_after_seconds = stale_after_seconds
        self.sleep = sleep
        self.last_refresh_time: Optional[datetime] = None
        self._guard = threading.Lock()

    @property
    def is_refreshing(self) -> bool:
        return self._guard.locked()

    def refresh_all(self, feeds: Optional[list[Feed]] = None) -> Optional[RefreshReport]:
        if not self._guard.acquire(blocking=False):
            log_event("refresh_skipped", reason="in_flight")
            return None
        try:
            feeds = self.store.list_feeds() if feeds is None else feeds
            if not feeds:
                return RefreshReport(started_at=_now().isoformat(), finished_at=_now().isoformat())
            return self._run(feeds)
        finally:
            self._guard.release()

    def refresh_stale(self, now: Optional[datetime] = None) -> Optional[RefreshReport]:
        now = now or _now()
        stale = [f for f in self.store.list_feeds() if is_stale(f, now, self.stale_after_seconds)]
        return self.refresh_all(stale)

    def _run(self, feeds: list[Feed]) -> RefreshReport:
        report = RefreshReport(started_at=_now().isoformat())
        log_event("refresh_start", feeds=len(feeds))

        for feed in feeds:
            try:
                fresh = self.fetch(feed.url)
                added = apply_refresh(self.store, feed.id, fresh.items)
                report.refreshed += 1
                report.new_items += added
                log_event("refresh_feed_done", feed_id=feed.id, url=feed.url, new_items=added)
            except Exception as e:
                failure = PartialRefreshFailure(feed_id=feed.id, url=feed.url, title=feed.title, error=str(e))
                report.failures.append(failure)
                log_error("refresh_error", feed_id=feed.id, url=feed.url, title=feed.title, error=str(e))
            self.sleep(self.delay_seconds)

        report.finished_at = _now().isoformat()
        self.last_refresh_time = _now()
        log_event(
            "refresh_done",
            refreshed=report.refreshed,
            new_items=report.new_items,
            failures=len(report.failures),
        )
        return report

    def run_forever(
        self,
        interval_seconds: float = REFRESH_INTERVAL_SECONDS,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        stop_event = stop_event or threading.Event()
        self.refresh_stale()
        while not stop_event.wait(interval_seconds):
            self.refresh_all()
