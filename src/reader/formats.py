"""Recognize the syndication format of a parsed document and pull out its channel data.

Each format variant offers the same two calls, ``channel()`` and
``extract_items(feed_id, base_url)``, so the assembler never branches on the
format itself.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

from .errors import UnsupportedFormat
from .fields import as_list, attr, child, first_text, text_of
from .models import FeedItem
from .normalize import normalize_atom_entry, normalize_rss_item, select_link

DEFAULT_FEED_TITLE = "Unknown Feed"


@dataclass(frozen=True)
class ChannelMeta:
    title: str
    link: str
    description: str
    image_url: Optional[str] = None


class SyndicationFormat(Protocol):
    kind: str

    def channel(self) -> ChannelMeta: ...

    def extract_items(self, feed_id: str, base_url: str) -> list[FeedItem]: ...


def _image_ref(image: Any) -> Optional[str]:
    url = text_of(child(image, "url")) or attr(image, "rdf:resource")
    return url or None


@dataclass
class RssFormat:
    node: dict[str, Any]
    kind: str = "rss"

    def channel(self) -> ChannelMeta:
        ch = self.node
        images = as_list(ch.get("image"))
        return ChannelMeta(
            title=text_of(ch.get("title")) or DEFAULT_FEED_TITLE,
            link=first_text(*as_list(ch.get("link"))),
            description=text_of(ch.get("description")),
            image_url=_image_ref(images[0]) if images else None,
        )

    def extract_items(self, feed_id: str, base_url: str) -> list[FeedItem]:
        return [normalize_rss_item(i, feed_id, base_url) for i in as_list(self.node.get("item"))]


@dataclass
class AtomFormat:
    node: dict[str, Any]
    kind: str = "atom"

    def channel(self) -> ChannelMeta:
        f = self.node
        return ChannelMeta(
            title=text_of(f.get("title")) or DEFAULT_FEED_TITLE,
            link=select_link(f.get("link")),
            description=text_of(f.get("subtitle")),
            image_url=first_text(f.get("icon"), f.get("logo")) or None,
        )

    def extract_items(self, feed_id: str, base_url: str) -> list[FeedItem]:
        return [normalize_atom_entry(e, feed_id, base_url) for e in as_list(self.node.get("entry"))]


@dataclass
class RdfFormat:
    node: dict[str, Any]
    kind: str = "rdf"

    def channel(self) -> ChannelMeta:
        ch = self.node.get("channel")
        ch = ch if isinstance(ch, dict) else {}
        # RSS 1.0 puts <image> next to the channel; the channel only references it.
        images = as_list(self.node.get("image")) + as_list(ch.get("image"))
        image_url = next((u for u in (_image_ref(i) for i in images) if u), None)
        return ChannelMeta(
            title=text_of(ch.get("title")) or DEFAULT_FEED_TITLE,
            link=text_of(ch.get("link")),
            description=text_of(ch.get("description")),
            image_url=image_url,
        )

    def extract_items(self, feed_id: str, base_url: str) -> list[FeedItem]:
        return [normalize_rss_item(i, feed_id, base_url) for i in as_list(self.node.get("item"))]


Detected = Union[RssFormat, AtomFormat, RdfFormat]


def detect_format(tree: dict[str, Any]) -> Detected:
    rss = tree.get("rss")
    if isinstance(rss, dict) and isinstance(rss.get("channel"), dict):
        return RssFormat(rss["channel"])

    if "feed" in tree:
        feed = tree["feed"]
        return AtomFormat(feed if isinstance(feed, dict) else {})

    if "rdf:RDF" in tree:
        rdf = tree["rdf:RDF"]
        return RdfFormat(rdf if isinstance(rdf, dict) else {})

    raise UnsupportedFormat()
