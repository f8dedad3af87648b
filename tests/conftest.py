from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional, Union

import pytest
import requests

from sitemapper.fetch import FetchResult


class FakeResponse:
    def __init__(
        self,
        body: Union[bytes, str],
        status_code: int = 200,
        content_type: str = "text/html; charset=utf-8",
        url: Optional[str] = None,
        chunk_delay: float = 0.0,
    ):
        self.content = body.encode("utf-8") if isinstance(body, str) else body
        self.status_code = status_code
        self.headers = {"content-type": content_type}
        self.url = url
        self.chunk_delay = chunk_delay
        self.closed = False

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            if self.chunk_delay:
                time.sleep(self.chunk_delay)
            yield self.content[start:start + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Stands in for requests.Session: maps URLs to responses or exceptions."""

    def __init__(self, pages: Dict[str, object]):
        self.pages = pages
        self.headers: Dict[str, str] = {}
        self.requested: List[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url, timeout=None, allow_redirects=True, stream=False):
        with self._lock:
            self.requested.append(url)
        page = self.pages.get(url)
        if page is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(page, Exception):
            raise page
        if page.url is None:
            page.url = url
        return page

    def close(self):
        self.closed = True


class FakeFetcher:
    """Returns canned link lists per URL and records every batch it was given."""

    def __init__(self, links: Dict[str, List[str]]):
        self.links = links
        self.batches: List[List[str]] = []

    def fetch_all(self, urls):
        urls = list(urls)
        self.batches.append(urls)
        return [FetchResult(source=u, links=list(self.links.get(u, [])), status_code=200) for u in urls]


def page(*hrefs: str) -> FakeResponse:
    anchors = "".join(f'<a href="{h}">link</a>' for h in hrefs)
    return FakeResponse(f"<html><body>{anchors}</body></html>")


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_fetcher():
    return FakeFetcher


@pytest.fixture
def make_page():
    return page


@pytest.fixture
def make_response():
    return FakeResponse
