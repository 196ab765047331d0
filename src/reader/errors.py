from __future__ import annotations

from typing import Optional


class FeedError(Exception):
    """Base class for errors surfaced to whoever asked for a feed operation."""


class FetchError(FeedError):
    def __init__(self, url: str, status: Optional[int] = None, reason: str = ""):
        self.url = url
        self.status = status
        self.reason = reason
        if status is not None:
            msg = f"Failed to fetch feed: {status} {reason}".rstrip()
        else:
            msg = f"Failed to fetch feed: {reason or 'network error'}"
        super().__init__(msg)


class FeedParseError(FeedError):
    pass


class UnsupportedFormat(FeedError):
    def __init__(self, message: str = "Unable to parse feed: unsupported format"):
        super().__init__(message)


class InvalidFeedUrl(FeedError):
    def __init__(self, url: str):
        self.url = url
        super().__init__("URL must start with http:// or https://")


class DuplicateSubscription(FeedError):
    def __init__(self, url: str):
        self.url = url
        super().__init__("This feed has already been added")


class OpmlError(FeedError):
    pass


class SummarizeError(FeedError):
    pass


class SummaryCancelled(SummarizeError):
    def __init__(self):
        super().__init__("Summary request was cancelled")
