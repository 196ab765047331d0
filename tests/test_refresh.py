import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from src.reader.assembler import parse_feed
from src.reader.errors import FetchError
from src.reader.pipeline import add_subscription
from src.reader.refresh import FeedRefresher, apply_refresh, is_stale, select_new_items

NOW = datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)


def _rss(*items):
    body = "".join(
        f"<item><title>{title}</title><link>{link}</link><description>{title} body</description></item>"
        for title, link in items
    )
    return f"<rss version='2.0'><channel><title>Blog</title><link>https://ex.com/</link>{body}</channel></rss>"


def _fetcher(xml_by_url):
    def fetch(url):
        return parse_feed(xml_by_url[url], url)

    return fetch


def test_duplicate_links_in_one_fetch_are_all_stored_then_never_again(store):
    xml = _rss(("A", "https://ex.com/a"), ("A again", "https://ex.com/a"), ("B", "https://ex.com/b"))
    fetch = _fetcher({"https://ex.com/feed": xml})

    feed_id = add_subscription(store, "https://ex.com/feed", fetch=fetch)
    assert len(store.list_items(feed_id)) == 3

    report = FeedRefresher(store, fetch=fetch, sleep=lambda s: None).refresh_all()
    assert report.refreshed == 1
    assert report.new_items == 0
    assert len(store.list_items(feed_id)) == 3


def test_refresh_keeps_item_state(store):
    xml = _rss(("A", "https://ex.com/a"), ("B", "https://ex.com/b"))
    fetch = _fetcher({"https://ex.com/feed": xml})
    feed_id = add_subscription(store, "https://ex.com/feed", fetch=fetch)
    item = store.list_items(feed_id)[0]
    store.mark_read(item.id)
    store.toggle_star(item.id)
    store.save_summary(item.id, "kept")

    refresher = FeedRefresher(store, fetch=fetch, sleep=lambda s: None)
    refresher.refresh_all()
    refresher.refresh_all()

    kept = store.get_item(item.id)
    assert kept.is_read and kept.is_starred and kept.summary == "kept"
    assert len(store.list_items(feed_id)) == 2


def test_changed_title_same_link_is_not_new(store):
    urls = {"https://ex.com/feed": _rss(("Old title", "https://ex.com/a"))}
    fetch = _fetcher(urls)
    feed_id = add_subscription(store, "https://ex.com/feed", fetch=fetch)

    urls["https://ex.com/feed"] = _rss(("New title", "https://ex.com/a"), ("Other", "https://ex.com/b"))
    report = FeedRefresher(store, fetch=fetch, sleep=lambda s: None).refresh_all()

    assert report.new_items == 1
    titles = sorted(i.title for i in store.list_items(feed_id))
    assert titles == ["Old title", "Other"]


def test_select_new_items_only_checks_persisted_links():
    feed = parse_feed(_rss(("A", "https://ex.com/a"), ("A2", "https://ex.com/a"), ("B", "https://ex.com/b")), "https://ex.com/f")
    assert [i.title for i in select_new_items(feed.items, {"https://ex.com/b"})] == ["A", "A2"]
    assert select_new_items(feed.items, {"https://ex.com/a", "https://ex.com/b"}) == []


def test_apply_refresh_stamps_last_fetched_even_with_nothing_new(store):
    fetch = _fetcher({"https://ex.com/feed": _rss(("A", "https://ex.com/a"))})
    feed_id = add_subscription(store, "https://ex.com/feed", fetch=fetch)

    assert apply_refresh(store, feed_id, [], now="2024-01-03T12:00:00+00:00") == 0
    assert store.get_feed(feed_id).last_fetched == "2024-01-03T12:00:00+00:00"


def test_one_failing_feed_does_not_stop_the_cycle(store):
    xml = {
        "https://ex.com/a": _rss(("A", "https://ex.com/a/1")),
        "https://ex.com/b": _rss(("B", "https://ex.com/b/1")),
    }
    fetch = _fetcher(xml)
    add_subscription(store, "https://ex.com/a", fetch=fetch)
    b_id = add_subscription(store, "https://ex.com/b", fetch=fetch)
    xml["https://ex.com/b"] = _rss(("B", "https://ex.com/b/1"), ("B2", "https://ex.com/b/2"))

    def flaky(url):
        if url == "https://ex.com/a":
            raise FetchError(url, status=500, reason="Server Error")
        return fetch(url)

    sleep = MagicMock()
    report = FeedRefresher(store, fetch=flaky, delay_seconds=0.25, sleep=sleep).refresh_all()

    assert report.refreshed == 1
    assert report.new_items == 1
    assert len(report.failures) == 1
    failure = report.failures[0]
    assert failure.url == "https://ex.com/a"
    assert failure.title == "Blog"
    assert "500" in failure.error
    assert len(store.list_items(b_id)) == 2
    assert sleep.call_count == 2
    sleep.assert_called_with(0.25)


def test_refresh_requested_during_a_cycle_is_dropped(store):
    fetch = _fetcher({"https://ex.com/feed": _rss(("A", "https://ex.com/a"))})
    add_subscription(store, "https://ex.com/feed", fetch=fetch)

    nested = []
    refresher = FeedRefresher(store, sleep=lambda s: None)

    def reentrant(url):
        assert refresher.is_refreshing
        nested.append(refresher.refresh_all())
        return fetch(url)

    refresher.fetch = reentrant
    report = refresher.refresh_all()

    assert nested == [None]
    assert report.refreshed == 1
    assert not refresher.is_refreshing


def test_empty_store_gives_empty_report(store):
    fetch = MagicMock()
    report = FeedRefresher(store, fetch=fetch, sleep=lambda s: None).refresh_all()
    assert report.refreshed == 0
    assert report.failures == []
    fetch.assert_not_called()


def test_is_stale():
    feed = parse_feed(_rss(), "https://ex.com/f", now=(NOW - timedelta(minutes=4)).isoformat())
    assert not is_stale(feed, NOW, 300)
    assert is_stale(feed, NOW + timedelta(minutes=2), 300)

    feed.last_fetched = None
    assert is_stale(feed, NOW, 300)
    feed.last_fetched = "garbage"
    assert is_stale(feed, NOW, 300)


def test_refresh_stale_skips_recent_feeds(store):
    xml = {
        "https://ex.com/a": _rss(("A", "https://ex.com/a/1")),
        "https://ex.com/b": _rss(("B", "https://ex.com/b/1")),
    }
    fetch = _fetcher(xml)
    a_id = add_subscription(store, "https://ex.com/a", fetch=fetch)
    b_id = add_subscription(store, "https://ex.com/b", fetch=fetch)
    store.touch_last_fetched(a_id, (NOW - timedelta(minutes=1)).isoformat())
    store.touch_last_fetched(b_id, (NOW - timedelta(hours=1)).isoformat())

    seen = []

    def tracking(url):
        seen.append(url)
        return fetch(url)

    FeedRefresher(store, fetch=tracking, sleep=lambda s: None).refresh_stale(now=NOW)
    assert seen == ["https://ex.com/b"]


def test_run_forever_stops_on_event(store):
    stop = threading.Event()
    refresher = FeedRefresher(store, sleep=lambda s: None)
    calls = []

    def refresh_all(feeds=None):
        calls.append(feeds)
        stop.set()

    refresher.refresh_all = refresh_all
    refresher.run_forever(interval_seconds=0.01, stop_event=stop)
    assert len(calls) == 1


@pytest.mark.parametrize("delay", [0.0, 0.5])
def test_delay_is_passed_to_sleep(store, delay):
    fetch = _fetcher({"https://ex.com/feed": _rss(("A", "https://ex.com/a"))})
    add_subscription(store, "https://ex.com/feed", fetch=fetch)
    sleep = MagicMock()
    FeedRefresher(store, fetch=fetch, delay_seconds=delay, sleep=sleep).refresh_all()
    sleep.assert_called_once_with(delay)
