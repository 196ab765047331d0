from __future__ import annotations

import re
from datetime import timezone
from typing import Any, Optional
from urllib.parse import urljoin

from dateutil import parser as date_parser

from .fields import as_list, attr, child, first_text, text_of
from .models import FeedItem, new_id

SNIPPET_LENGTH = 200

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_IMG_SRC_RE = re.compile(r"""(<img\b[^>]*?\s)(src\s*=\s*)(["'])(.*?)\3""", re.IGNORECASE | re.DOTALL)
_FIRST_IMG_RE = re.compile(r"""<img\b[^>]*?\ssrc\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_ABSOLUTE_RE = re.compile(r"^https?://", re.IGNORECASE)


def resolve_url(value: str, base_url: str) -> str:
    value = (value or "").strip()
    if not value or _ABSOLUTE_RE.match(value):
        return value
    if not base_url:
        return value
    try:
        return urljoin(base_url, value)
    except ValueError:
        return value


def resolve_content_urls(content: str, base_url: str) -> str:
    if not content or "<img" not in content.lower():
        return content

    def _sub(m: re.Match[str]) -> str:
        return f"{m.group(1)}{m.group(2)}{m.group(3)}{resolve_url(m.group(4), base_url)}{m.group(3)}"

    return _IMG_SRC_RE.sub(_sub, content)


def make_snippet(content: str) -> str:
    if not isinstance(content, str):
        return ""
    text = _TAG_RE.sub("", content).replace("&nbsp;", " ")
    text = _WS_RE.sub(" ", text).strip()
    return text[:SNIPPET_LENGTH]


def pubdate_timestamp(value: Any) -> float:
    """Sort key for a raw pubDate string; anything unparseable sorts as epoch 0."""
    text = text_of(value) if not isinstance(value, str) else value.strip()
    if not text:
        return 0.0
    try:
        dt = date_parser.parse(text)
    except (ValueError, OverflowError):
        return 0.0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        return dt.timestamp()
    except (OverflowError, OSError, ValueError):
        return 0.0


def select_link(value: Any) -> str:
    """Atom link: prefer rel=alternate or no rel, else the first entry."""
    links = [v for v in as_list(value) if v is not None]
    if not links:
        return ""
    if len(links) == 1 and isinstance(links[0], str):
        return links[0].strip()

    for link in links:
        rel = attr(link, "rel")
        if rel in ("", "alternate") and attr(link, "href"):
            return attr(link, "href")
    first = links[0]
    if isinstance(first, str):
        return first.strip()
    return attr(first, "href")


def _select_content(node: dict[str, Any]) -> str:
    return first_text(
        node.get("content:encoded"),
        node.get("description"),
        node.get("content"),
        node.get("summary"),
    )


def _author(node: dict[str, Any]) -> str:
    authors = as_list(node.get("author"))
    for a in authors:
        if isinstance(a, dict) and "name" in a:
            continue
        t = text_of(a)
        if t:
            return t

    creator = first_text(*as_list(node.get("dc:creator")))
    if creator:
        return creator

    for a in authors:
        t = text_of(child(a, "name"))
        if t:
            return t
    return ""


def _pub_date(node: dict[str, Any]) -> str:
    return first_text(
        node.get("pubDate"),
        node.get("dc:date"),
        node.get("updated"),
        node.get("published"),
    )


def _media_url(node: dict[str, Any], key: str) -> str:
    candidates = list(as_list(node.get(key)))
    for group in as_list(node.get("media:group")):
        candidates += as_list(child(group, key))
    for c in candidates:
        url = attr(c, "url")
        if url:
            return url
    return ""


def find_image_url(node: dict[str, Any], raw_content: str, base_url: str) -> Optional[str]:
    for enclosure in as_list(node.get("enclosure")):
        if attr(enclosure, "type").lower().startswith("image/") and attr(enclosure, "url"):
            return resolve_url(attr(enclosure, "url"), base_url)

    for key in ("media:content", "media:thumbnail"):
        url = _media_url(node, key)
        if url:
            return resolve_url(url, base_url)

    if raw_content:
        m = _FIRST_IMG_RE.search(raw_content)
        if m and m.group(1).strip():
            return resolve_url(m.group(1), base_url)
    return None


def _build_item(node: dict[str, Any], feed_id: str, base_url: str, link: str) -> FeedItem:
    raw_content = _select_content(node)
    content = resolve_content_urls(raw_content, base_url)
    return FeedItem(
        id=new_id(),
        feed_id=feed_id,
        title=text_of(node.get("title")) or "Untitled",
        link=link,
        content=content,
        content_snippet=make_snippet(content),
        author=_author(node),
        pub_date=_pub_date(node),
        image_url=find_image_url(node, raw_content, base_url),
        is_read=False,
        is_starred=False,
    )


def normalize_rss_item(node: Any, feed_id: str, base_url: str) -> FeedItem:
    node = node if isinstance(node, dict) else {}
    link = first_text(*as_list(node.get("link"))) or attr(node, "rdf:about")
    return _build_item(node, feed_id, base_url, link)


def normalize_atom_entry(node: Any, feed_id: str, base_url: str) -> FeedItem:
    node = node if isinstance(node, dict) else {}
    return _build_item(node, feed_id, base_url, select_link(node.get("link")))
