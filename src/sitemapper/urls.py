"""
URL cleaning and site-membership checks.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional
from urllib.parse import urlsplit, urlunsplit

import tldextract

logger = logging.getLogger(__name__)

# Bundled public suffix snapshot only, no network lookup at crawl time.
# Private suffixes (github.io, blogspot.com, ...) count, so each hosted site
# is its own registrable domain.
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=(), include_psl_private_domains=True)

WEB_SCHEMES = ("http", "https")


def clean(url: str) -> str:
    """Strip query and fragment, leaving scheme, host, port and path alone."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def clean_all(urls: Iterable[str]) -> List[str]:
    return [clean(u) for u in urls]


def hostname(url: str) -> str:
    """Lower-cased host of `url`, or an empty string if it has none."""
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def host_domain(host: str) -> Optional[str]:
    """
    Effective TLD+1 of a hostname (e.g. blog.example.co.uk -> example.co.uk).

    Returns None when no registrable domain exists: IP literals, bare public
    suffixes, empty hosts.
    """
    if not host:
        return None
    ext = _EXTRACT(host.lower())
    if not ext.domain or not ext.suffix:
        return None
    return f"{ext.domain}.{ext.suffix}"


def registrable_domain(url: str) -> Optional[str]:
    """Registrable domain of the URL's host, or None if it has none."""
    return host_domain(hostname(url))


def is_part_of_site(url: str, site_domain: Optional[str]) -> bool:
    """True if `url` is an http(s) URL sharing the registrable domain `site_domain` (subdomains included)."""
    if not site_domain:
        return False
    try:
        scheme = urlsplit(url).scheme.lower()
    except ValueError:
        return False
    if scheme not in WEB_SCHEMES:
        return False
    link_domain = registrable_domain(url)
    if link_domain is None:
        logger.debug("No registrable domain for %s, excluding it", url)
        return False
    return link_domain == site_domain


def filter_to_site(urls: Iterable[str], site_domain: Optional[str]) -> List[str]:
    """Keep only URLs on the site, preserving order."""
    return [u for u in urls if is_part_of_site(u, site_domain)]
