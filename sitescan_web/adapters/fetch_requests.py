from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import quote

import requests

from sitescan_web.domain.errors import FetchError

logger = logging.getLogger(__name__)

USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:125.0) Gecko/20100101 Firefox/125.0",
)

BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


class Forwarding:
    """Strategy interface: how a target URL is turned into the URL actually requested."""
    def route(self, url: str) -> str:
        raise NotImplementedError


class DirectForwarding(Forwarding):
    def route(self, url: str) -> str:
        return url


@dataclass(frozen=True)
class PrefixForwarding(Forwarding):
    """Forwarding services of the `https://proxy/raw?url=` kind."""
    prefix: str

    def route(self, url: str) -> str:
        return f"{self.prefix}{quote(url, safe='')}"


def forwarding_from_prefix(prefix: str) -> Forwarding:
    prefix = (prefix or "").strip()
    return PrefixForwarding(prefix) if prefix else DirectForwarding()


@dataclass(frozen=True)
class FetchedResource:
    url: str
    status_code: int
    content_type: str
    content: bytes
    text: str

    @property
    def size(self) -> int:
        return len(self.content)


class RequestsDocumentFetcher:
    """
    Resolves a URL to document text over requests.
    Up to `max_attempts` tries; the wait before try k+1 is backoff_seconds * k.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        timeout_seconds: float = 15,
        forwarding: Optional[Forwarding] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._session = session or requests.Session()
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.timeout_seconds = timeout_seconds
        self._forwarding = forwarding or DirectForwarding()
        self._rng = rng or random.Random()
        self._sleep = sleep

    def fetch(self, url: str) -> str:
        return self.fetch_resource(url).text

    def fetch_resource(self, url: str) -> FetchedResource:
        last_error: Optional[FetchError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._attempt(url)
            except FetchError as e:
                last_error = e
                logger.warning("Fetch attempt %d/%d for %s failed: %s", attempt, self.max_attempts, url, e.reason)

            if attempt < self.max_attempts:
                self._sleep(self.backoff_seconds * attempt)

        raise FetchError(
            url,
            last_error.reason if last_error else "no attempt made",
            status_code=last_error.status_code if last_error else None,
            attempts=self.max_attempts,
        )

    def _attempt(self, url: str) -> FetchedResource:
        headers = dict(BASE_HEADERS)
        headers["User-Agent"] = self._rng.choice(USER_AGENTS)

        try:
            r = self._session.get(
                self._forwarding.route(url),
                headers=headers,
                timeout=self.timeout_seconds,
                allow_redirects=True,
            )
        except requests.exceptions.Timeout as e:
            raise FetchError(url, f"timeout: {e}") from e
        except requests.exceptions.ConnectionError as e:
            raise FetchError(url, f"connection error: {e}") from e
        except requests.exceptions.RequestException as e:
            raise FetchError(url, f"request error: {e}") from e

        if not 200 <= r.status_code < 300:
            raise FetchError(url, r.reason or "HTTP error", status_code=r.status_code)

        return FetchedResource(
            url=url,
            status_code=r.status_code,
            content_type=(r.headers.get("Content-Type") or "").lower(),
            content=r.content or b"",
            text=r.text or "",
        )
