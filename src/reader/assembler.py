from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .config_loader import load_settings
from .formats import detect_format
from .http_client import HttpPolicy, PoliteHttpClient
from .logging_utils import log_event
from .models import Feed, new_id
from .normalize import resolve_url
from .xml_tree import parse_xml


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_feed(xml_text: str, url: str, *, now: Optional[str] = None) -> Feed:
    tree = parse_xml(xml_text)
    fmt = detect_format(tree)
    meta = fmt.channel()

    base_url = meta.link or url
    feed_id = new_id()
    items = fmt.extract_items(feed_id, base_url)

    feed = Feed(
        id=feed_id,
        title=meta.title,
        url=url,
        link=meta.link,
        description=meta.description,
        image_url=resolve_url(meta.image_url, base_url) if meta.image_url else None,
        folder_id=None,
        last_fetched=now or _now_iso(),
        items=items,
    )
    log_event("feed_parsed", url=url, format=fmt.kind, items=len(items))
    return feed


def default_http_client() -> PoliteHttpClient:
    settings = load_settings()
    policy = HttpPolicy(timeout_seconds=settings.timeout_seconds, retries=settings.retries)
    return PoliteHttpClient(policy, user_agent=settings.user_agent)


def fetch_and_parse_feed(url: str, http: Optional[PoliteHttpClient] = None) -> Feed:
    http = http or default_http_client()
    log_event("fetch_start", url=url)
    try:
        xml_text = http.fetch_text(url)
    except Exception as e:
        log_event("fetch_error", url=url, error=str(e))
        raise
    feed = parse_feed(xml_text, url)
    log_event("fetch_done", url=url, count=len(feed.items))
    return feed
