"""Turn an XML document into a plain nested dict tree.

Keys keep the prefix the document used (``content:encoded``, ``rdf:RDF``),
attributes are stored as ``@_name``, CDATA text as ``{"#cdata": text}`` and
mixed text as ``#text``. Repeated siblings become lists.
"""
from __future__ import annotations

import re
from typing import Any

from lxml import etree

from .errors import FeedParseError

ATTR_PREFIX = "@_"
TEXT_KEY = "#text"
CDATA_KEY = "#cdata"

_XML_DECL_ENCODING = re.compile(r"^(\s*<\?xml[^>]*?)\s+encoding=(['\"])[^'\"]*\2", re.IGNORECASE)

# Prefixes used by feeds that forget to declare them.
_KNOWN_PREFIXES = {
    "http://www.w3.org/XML/1998/namespace": "xml",
}


def _parser() -> etree.XMLParser:
    return etree.XMLParser(
        strip_cdata=False,
        resolve_entities=False,
        no_network=True,
        recover=True,
        remove_comments=True,
        remove_pis=True,
        huge_tree=False,
    )


def _qualified(tag: str, nsmap: dict[str | None, str]) -> str:
    if not tag.startswith("{"):
        return tag
    uri, local = tag[1:].split("}", 1)
    prefix = _KNOWN_PREFIXES.get(uri)
    if prefix is None:
        for p, u in nsmap.items():
            if u == uri and p is not None:
                prefix = p
                break
    return f"{prefix}:{local}" if prefix else local


def _element_key(el: etree._Element) -> str:
    local = etree.QName(el).localname
    return f"{el.prefix}:{local}" if el.prefix else local


def _is_cdata(el: etree._Element) -> bool:
    raw = etree.tostring(el, with_tail=False, encoding="unicode")
    start = raw.find(">")
    return raw[start + 1:].lstrip().startswith("<![CDATA[")


def _inner_markup(el: etree._Element) -> str:
    parts = [el.text or ""]
    for child in el:
        markup = etree.tostring(child, encoding="unicode", with_tail=True)
        # Drop the namespace declarations lxml repeats on every serialized child.
        parts.append(re.sub(r'\s+xmlns(:\w+)?="[^"]*"', "", markup))
    return "".join(parts).strip()


def _add_child(out: dict[str, Any], key: str, value: Any) -> None:
    if key not in out:
        out[key] = value
        return
    existing = out[key]
    if isinstance(existing, list):
        existing.append(value)
    else:
        out[key] = [existing, value]


def _convert(el: etree._Element) -> Any:
    attrs = {ATTR_PREFIX + _qualified(k, el.nsmap): v for k, v in el.attrib.items()}
    children = [c for c in el if isinstance(c.tag, str)]
    text = el.text or ""

    if not children:
        cdata = bool(text.strip()) and _is_cdata(el)
        if not attrs:
            return {CDATA_KEY: text.strip()} if cdata else text.strip()
        node: dict[str, Any] = dict(attrs)
        if text.strip():
            node[CDATA_KEY if cdata else TEXT_KEY] = text.strip()
        return node

    node = dict(attrs)
    for child in children:
        _add_child(node, _element_key(child), _convert(child))

    if attrs.get(ATTR_PREFIX + "type") == "xhtml":
        # Atom inline XHTML: keep the markup itself as the text value.
        node[TEXT_KEY] = _inner_markup(el)
        return node

    direct_text = text + "".join(c.tail or "" for c in children)
    if direct_text.strip():
        node[TEXT_KEY] = direct_text.strip()
    return node


def parse_xml(text: str) -> dict[str, Any]:
    if isinstance(text, bytes):
        data: Any = text
    else:
        # lxml refuses str input that still carries an encoding declaration.
        data = _XML_DECL_ENCODING.sub(r"\1", text.lstrip("\ufeff"), count=1)

    try:
        root = etree.fromstring(data, parser=_parser())
    except (etree.XMLSyntaxError, ValueError) as e:
        raise FeedParseError(f"Unable to parse feed: {e}") from e
    if root is None:
        raise FeedParseError("Unable to parse feed: document is empty or not XML")

    return {_element_key(root): _convert(root)}
