"""
Concurrent page fetching and link extraction for one crawl level.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import requests
from bs4 import ParserRejectedMarkup

from sitemapper.links import extract_links

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "sitemapper/1.0"
HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
CHUNK_SIZE = 64 * 1024


@dataclass(slots=True)
class FetchResult:
    """Links found on one page. An empty list on failure, with `error` set."""
    source: str
    links: List[str] = field(default_factory=list)
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _is_html(resp: requests.Response) -> bool:
    content_type = (resp.headers.get("content-type") or "").lower()
    return any(ct in content_type for ct in HTML_CONTENT_TYPES)


def _read_body(resp: requests.Response, deadline: float) -> bytes:
    """Read the streamed body, giving up once `deadline` (monotonic clock) has passed."""
    chunks = []
    for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
        chunks.append(chunk)
        if time.monotonic() > deadline:
            raise requests.Timeout(f"body of {resp.url} not received within the request timeout")
    return b"".join(chunks)


class Fetcher:
    """
    Fetches a batch of pages in parallel and reports the links on each.

    Every URL gets its own task. Tasks only touch their own FetchResult;
    the thread calling fetch_all() is the sole collector of results.

    `timeout_s` bounds the whole request: requests applies it to connecting
    and to each socket read, and the body is read against an overall
    deadline so a slowly trickling server cannot stall a level.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout_s: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        max_workers: Optional[int] = None,
    ) -> None:
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.session.headers["User-Agent"] = user_agent
        self.timeout_s = timeout_s
        self.max_workers = max_workers

    def __enter__(self) -> Fetcher:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    def fetch_links(self, url: str) -> FetchResult:
        """
        Fetch one page and extract its links. Never raises for transport or markup errors.

        Links are resolved against the URL that was finally served, after
        redirects, while the result stays keyed by the requested `url`.
        """
        result = FetchResult(source=url)
        deadline = time.monotonic() + self.timeout_s
        try:
            resp = self.session.get(url, timeout=self.timeout_s, allow_redirects=True, stream=True)
            try:
                result.status_code = resp.status_code
                if not _is_html(resp):
                    logger.debug("Skipping non-HTML response from %s", url)
                    return result
                body = _read_body(resp, deadline)
            finally:
                resp.close()
            result.links = extract_links(body, resp.url or url)
        except requests.RequestException as exc:
            logger.warning("Loading failed for %s, treating it as having no links: %s", url, exc)
            result.error = type(exc).__name__
        except ParserRejectedMarkup as exc:
            logger.warning("Could not parse HTML from %s: %s", url, exc)
            result.error = "parse_error"
            result.links = []
        return result

    def fetch_all(self, urls: Iterable[str]) -> List[FetchResult]:
        """
        Fetch every URL concurrently and return once all have finished.

        Results come back in the order the URLs were given, regardless of
        completion order.
        """
        urls = list(urls)
        if not urls:
            return []

        workers = self.max_workers or len(urls)
        collected: Dict[str, FetchResult] = {}
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_url = {executor.submit(self.fetch_links, url): url for url in urls}
            for future in as_completed(future_to_url):
                collected[future_to_url[future]] = future.result()

        return [collected[url] for url in urls]
