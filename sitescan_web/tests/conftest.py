from __future__ import annotations

from typing import Dict, List, Optional, Tuple, Union

import pytest

from sitescan_web.adapters.fetch_requests import FetchedResource
from sitescan_web.domain.errors import FetchError
from sitescan_web.services.page_scanner import PageScanner
from sitescan_web.services.scan_session import ScanSession

EXAMPLE_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Example Domain</title>
  <meta name="description" content="An example page used in documentation.">
  <link rel="stylesheet" href="/static/site.css">
  <script src="/static/app.js" defer></script>
</head>
<body>
  <h1>Example Domain</h1>
  <p>This domain is for use in illustrative examples.</p>
  <img src="/logo.png" alt="Logo" width="120" height="40">
  <a href="/about">About</a>
  <a href="mailto:team@example.com">Mail us</a>
</body>
</html>
"""


# -----------------------------
# Test doubles
# -----------------------------
class FakeFetcher:
    """
    Serves canned documents by URL. A value that is an exception is raised instead.
    Unknown URLs fail like an HTTP 404 after one attempt.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, Union[str, Exception]]] = None,
        resources: Optional[Dict[str, Tuple[bytes, str]]] = None,
    ):
        self.pages = dict(pages or {})
        self.resources = dict(resources or {})
        self.calls: List[str] = []

    def fetch(self, url: str) -> str:
        self.calls.append(url)
        value = self.pages.get(url)
        if value is None:
            raise FetchError(url, "Not Found", status_code=404, attempts=1)
        if isinstance(value, Exception):
            raise value
        return value

    def fetch_resource(self, url: str) -> FetchedResource:
        if url in self.resources:
            self.calls.append(url)
            content, content_type = self.resources[url]
            return FetchedResource(url=url, status_code=200, content_type=content_type, content=content, text="")
        text = self.fetch(url)
        return FetchedResource(url=url, status_code=200, content_type="text/html", content=text.encode(), text=text)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher({"https://example.com": EXAMPLE_HTML})


@pytest.fixture
def scanner(fetcher) -> PageScanner:
    return PageScanner(fetcher=fetcher)


@pytest.fixture
def session() -> ScanSession:
    return ScanSession()
