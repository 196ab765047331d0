from __future__ import annotations

from typing import Any, Iterable, Optional

from lxml import etree

from .errors import FeedParseError, OpmlError
from .fields import as_list, attr
from .models import Feed, Folder, OpmlOutline
from .xml_tree import parse_xml


def _outline_title(node: Any) -> str:
    return attr(node, "title") or attr(node, "text") or "Untitled"


def _flatten(outlines: list[Any], parent_folder: Optional[str] = None) -> list[OpmlOutline]:
    results: list[OpmlOutline] = []
    for node in outlines:
        if not isinstance(node, dict):
            continue
        xml_url = attr(node, "xmlUrl")
        if xml_url:
            results.append(
                OpmlOutline(
                    title=_outline_title(node),
                    xml_url=xml_url,
                    html_url=attr(node, "htmlUrl") or None,
                    folder=parent_folder,
                )
            )
        elif node.get("outline") is not None:
            results += _flatten(as_list(node.get("outline")), _outline_title(node))
    return results


def parse_opml(text: str) -> list[OpmlOutline]:
    try:
        tree = parse_xml(text)
    except FeedParseError as e:
        raise OpmlError(f"Invalid OPML file: {e}") from e

    opml = tree.get("opml")
    body = opml.get("body") if isinstance(opml, dict) else None
    outlines = as_list(body.get("outline")) if isinstance(body, dict) else []
    if not outlines:
        raise OpmlError("Invalid OPML file: no outlines found")
    return _flatten(outlines)


def _feed_outline(parent: etree._Element, feed: Feed) -> None:
    node = etree.SubElement(parent, "outline")
    node.set("type", "rss")
    node.set("text", feed.title or feed.url)
    node.set("title", feed.title or feed.url)
    node.set("xmlUrl", feed.url)
    if feed.link:
        node.set("htmlUrl", feed.link)


def export_opml(feeds: Iterable[Feed], folders: Iterable[Folder], title: str = "Subscriptions") -> str:
    root = etree.Element("opml", version="2.0")
    head = etree.SubElement(root, "head")
    etree.SubElement(head, "title").text = title
    body = etree.SubElement(root, "body")

    feeds = list(feeds)
    folder_ids = set()
    for folder in folders:
        folder_ids.add(folder.id)
        members = [f for f in feeds if f.folder_id == folder.id]
        if not members:
            continue
        node = etree.SubElement(body, "outline")
        node.set("text", folder.name)
        node.set("title", folder.name)
        for feed in members:
            _feed_outline(node, feed)

    for feed in feeds:
        if feed.folder_id not in folder_ids:
            _feed_outline(body, feed)

    return etree.tostring(root, pretty_print=True, xml_declaration=True, encoding="UTF-8").decode("utf-8")
