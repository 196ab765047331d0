from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .xml_tree import ATTR_PREFIX, CDATA_KEY, TEXT_KEY


@dataclass(frozen=True)
class Plain:
    text: str


@dataclass(frozen=True)
class CData:
    text: str


@dataclass(frozen=True)
class TextWrapped:
    text: str


@dataclass(frozen=True)
class Missing:
    pass


FieldValue = Union[Plain, CData, TextWrapped, Missing]


def classify(value: Any) -> FieldValue:
    if isinstance(value, str):
        return Plain(value)
    if isinstance(value, dict):
        if isinstance(value.get(CDATA_KEY), str):
            return CData(value[CDATA_KEY])
        if TEXT_KEY in value and value[TEXT_KEY] is not None:
            return TextWrapped(str(value[TEXT_KEY]))
    return Missing()


def text_of(value: Any) -> str:
    v = classify(value)
    if isinstance(v, Missing):
        return ""
    return v.text.strip()


def first_text(*values: Any) -> str:
    for value in values:
        t = text_of(value)
        if t:
            return t
    return ""


def as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def attr(node: Any, name: str) -> str:
    if not isinstance(node, dict):
        return ""
    v = node.get(ATTR_PREFIX + name)
    return v.strip() if isinstance(v, str) else ""


def child(node: Any, name: str) -> Any:
    if not isinstance(node, dict):
        return None
    return node.get(name)
