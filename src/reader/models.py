from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class FeedItem:
    id: str
    feed_id: str
    title: str
    link: str
    content: str
    content_snippet: str
    author: str
    pub_date: str
    image_url: Optional[str] = None
    is_read: bool = False
    is_starred: bool = False
    summary: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "feedId": self.feed_id,
            "title": self.title,
            "link": self.link,
            "content": self.content,
            "contentSnippet": self.content_snippet,
            "author": self.author,
            "pubDate": self.pub_date,
            "isRead": self.is_read,
            "isStarred": self.is_starred,
        }
        if self.image_url is not None:
            out["imageUrl"] = self.image_url
        if self.summary is not None:
            out["summary"] = self.summary
        return out


@dataclass
class Feed:
    id: str
    title: str
    url: str
    link: str
    description: str
    image_url: Optional[str] = None
    folder_id: Optional[str] = None
    last_fetched: Optional[str] = None
    items: list[FeedItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "link": self.link,
            "description": self.description,
            "folderId": self.folder_id,
            "lastFetched": self.last_fetched,
            "items": [i.to_dict() for i in self.items],
        }
        if self.image_url is not None:
            out["imageUrl"] = self.image_url
        return out


@dataclass(frozen=True)
class Folder:
    id: str
    name: str
    is_expanded: bool = True
    sort_by: Optional[str] = None
    order: int = 0


@dataclass(frozen=True)
class OpmlOutline:
    title: str
    xml_url: str
    html_url: Optional[str] = None
    folder: Optional[str] = None
