from __future__ import annotations

import re
import threading
from typing import Iterator, Optional

import requests
from bs4 import BeautifulSoup

from .config_loader import DEFAULT_USER_AGENT
from .errors import SummarizeError, SummaryCancelled
from .logging_utils import log_event
from .storage import FeedStore

DEFAULT_MAX_CHARS = 5000


def _norm_ws(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "")).strip()


def prepare_content(html: str, limit: int = DEFAULT_MAX_CHARS) -> str:
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    text = _norm_ws(soup.get_text(" ").replace("\xa0", " "))
    return text[:limit] if limit else text


class SummaryClient:
    """Client for an external endpoint that streams a plain-text summary back."""

    def __init__(
        self,
        endpoint: str,
        session: Optional[requests.Session] = None,
        timeout_seconds: float = 60.0,
        max_chars: int = DEFAULT_MAX_CHARS,
    ):
        if not endpoint:
            raise SummarizeError("No summarize endpoint configured")
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", DEFAULT_USER_AGENT)
        self.timeout_seconds = timeout_seconds
        self.max_chars = max_chars

    def stream(self, content: str, title: str, cancel: Optional[threading.Event] = None) -> Iterator[str]:
        clean = prepare_content(content, self.max_chars)
        if not clean:
            raise SummarizeError("No content provided")
        if cancel is not None and cancel.is_set():
            raise SummaryCancelled()

        try:
            resp = self.session.post(
                self.endpoint,
                json={"content": clean, "title": title},
                stream=True,
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise SummarizeError(f"Summary request failed: {e}") from e

        with resp:
            if not 200 <= resp.status_code < 300:
                raise SummarizeError(f"Summary request failed: {resp.status_code} {resp.reason or ''}".rstrip())
            resp.encoding = resp.encoding or "utf-8"
            for chunk in resp.iter_content(chunk_size=None, decode_unicode=True):
                if cancel is not None and cancel.is_set():
                    raise SummaryCancelled()
                if chunk:
                    yield chunk


def summarize_item(
    store: FeedStore,
    client: SummaryClient,
    item_id: str,
    cancel: Optional[threading.Event] = None,
) -> str:
    item = store.get_item(item_id)
    if item is None:
        raise SummarizeError(f"Unknown item: {item_id}")

    summary = "".join(client.stream(item.content or item.content_snippet, item.title, cancel=cancel)).strip()
    if summary:
        store.save_summary(item_id, summary)
    log_event("summary_done", item_id=item_id, chars=len(summary))
    return summary
