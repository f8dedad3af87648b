"""
Anchor link extraction from HTML bodies.
"""
from __future__ import annotations

import logging
from typing import Iterator, List, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, SoupStrainer

logger = logging.getLogger(__name__)

# SoupStrainer to parse only <a> tags (faster link extraction)
LINK_STRAINER = SoupStrainer("a", href=True)


def iter_hrefs(body: Union[bytes, str]) -> Iterator[str]:
    """Yield the href of every <a> tag in document order, skipping empty ones."""
    soup = BeautifulSoup(body, "lxml", parse_only=LINK_STRAINER)
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if href:
            yield href


def extract_links(body: Union[bytes, str], base_url: str) -> List[str]:
    """
    Extract anchor targets from `body` as absolute URLs relative to `base_url`.

    An href that cannot be parsed is logged and dropped; the remaining
    anchors are still extracted.
    """
    links: List[str] = []
    for href in iter_hrefs(body):
        try:
            links.append(urljoin(base_url, href))
        except ValueError as exc:
            logger.debug("Dropping unparseable link %r on %s: %s", href, base_url, exc)
    return links
