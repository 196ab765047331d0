import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config_loader import DEFAULT_USER_AGENT
from .errors import FetchError


@dataclass
class HttpPolicy:
    timeout_seconds: float = 15.0
    retries: int = 0
    min_interval_seconds: float = 0.0


class PoliteHttpClient:
    def __init__(self, policy: Optional[HttpPolicy] = None, user_agent: str = DEFAULT_USER_AGENT):
        self.policy = policy or HttpPolicy()
        self.session = requests.Session()
        # Feeds are always revalidated; nothing is served from a cache.
        self.session.headers.update(
            {
                "User-Agent": user_agent,
                "Cache-Control": "no-cache",
                "Pragma": "no-cache",
                "Accept": "application/rss+xml, application/atom+xml, application/rdf+xml, application/xml;q=0.9, text/xml;q=0.9, */*;q=0.8",
            }
        )

        if self.policy.retries > 0:
            retry = Retry(
                total=self.policy.retries,
                connect=self.policy.retries,
                read=self.policy.retries,
                status=self.policy.retries,
                backoff_factor=0.5,
                status_forcelist=(429, 500, 502, 503, 504),
                allowed_methods=("GET", "HEAD"),
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

        self._last_request_at_by_host: dict[str, float] = {}

    def get(self, url: str) -> requests.Response:
        host = urlparse(url).netloc.lower()
        last = self._last_request_at_by_host.get(host)
        if last is not None and self.policy.min_interval_seconds > 0:
            sleep_for = (last + self.policy.min_interval_seconds) - time.time()
            if sleep_for > 0:
                time.sleep(sleep_for)

        try:
            resp = self.session.get(url, timeout=self.policy.timeout_seconds)
        except requests.RequestException as e:
            raise FetchError(url, reason=f"{type(e).__name__}: {e}") from e
        finally:
            self._last_request_at_by_host[host] = time.time()

        if not 200 <= resp.status_code < 300:
            raise FetchError(url, status=resp.status_code, reason=resp.reason or "")
        return resp

    def fetch_text(self, url: str) -> str:
        resp = self.get(url)
        # requests falls back to ISO-8859-1 for text/* without a charset; XML defaults to UTF-8.
        declared = "charset" in (resp.headers.get("Content-Type") or "").lower()
        if not declared:
            resp.encoding = "utf-8"
        return resp.text
