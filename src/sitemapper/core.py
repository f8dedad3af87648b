"""
Depth-bounded crawl loop that grows a SiteMap level by level.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import urlsplit

from sitemapper.fetch import DEFAULT_USER_AGENT, Fetcher, FetchResult
from sitemapper.tree import SiteMap, SitemapError
from sitemapper.urls import WEB_SCHEMES, clean, clean_all, filter_to_site

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CrawlConfig:
    """Settings for a single crawl."""
    max_depth: int = 5
    timeout_s: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    # None means one worker per frontier URL
    max_workers: Optional[int] = None


@dataclass(slots=True)
class CrawlStats:
    """Statistics collected during crawl for summary output."""
    pages_fetched: int = 0
    links_found: int = 0
    links_offsite: int = 0
    edges_added: int = 0
    duplicates: int = 0
    structural_errors: int = 0
    fetch_failures: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    def record_fetch(self, result: FetchResult) -> None:
        """Record the outcome of one page fetch."""
        self.pages_fetched += 1
        if result.error is not None:
            self.fetch_failures[result.error] += 1
        elif result.status_code is not None and result.status_code >= 400:
            self.fetch_failures[str(result.status_code)] += 1


def _valid_seed(seed: str) -> bool:
    try:
        parts = urlsplit(seed)
    except ValueError:
        return False
    return parts.scheme in WEB_SCHEMES and bool(parts.hostname)


def merge_results(sitemap: SiteMap, results: List[FetchResult], stats: CrawlStats) -> bool:
    """
    Clean, filter and insert every discovered link into the sitemap.

    Returns True if at least one new node was added.
    """
    added_any = False
    for result in results:
        stats.record_fetch(result)
        links = clean_all(result.links)
        on_site = filter_to_site(links, sitemap.registrable_domain)
        stats.links_found += len(links)
        stats.links_offsite += len(links) - len(on_site)

        for link in on_site:
            try:
                added = sitemap.add_edge(result.source, link)
            except SitemapError as exc:
                logger.warning("Error adding %s from %s to sitemap: %s", link, result.source, exc)
                stats.structural_errors += 1
                continue
            if added:
                stats.edges_added += 1
                added_any = True
            else:
                stats.duplicates += 1
    return added_any


def crawl(
    seed: str,
    max_depth: int = 5,
    timeout_s: float = 10.0,
    *,
    config: Optional[CrawlConfig] = None,
    fetcher: Optional[Fetcher] = None,
    stats: Optional[CrawlStats] = None,
) -> SiteMap:
    """
    Build a sitemap of the site at `seed`, following links up to `max_depth` hops.

    Args:
        seed: Absolute http(s) URL to start from.
        max_depth: Maximum number of hops from the seed.
        timeout_s: Per-request timeout in seconds.
        config: Full settings; overrides `max_depth` and `timeout_s` when given.
        fetcher: Fetch engine to use. One is created (and closed) from the
                 config when omitted.
        stats: Optional CrawlStats to fill in.

    Returns:
        The completed SiteMap. It has no root if the seed was not a usable URL.
    """
    if config is None:
        config = CrawlConfig(max_depth=max_depth, timeout_s=timeout_s)
    if stats is None:
        stats = CrawlStats()

    sitemap = SiteMap(max_depth=config.max_depth)
    if not _valid_seed(seed):
        logger.warning("The seed URL %r is not an absolute http(s) URL", seed)
        sitemap.finish(0)
        return sitemap

    sitemap.set_root(clean(seed))
    logger.info("Starting crawl from %s (max depth %d)", sitemap.root.address, config.max_depth)

    owns_fetcher = fetcher is None
    if fetcher is None:
        fetcher = Fetcher(
            timeout_s=config.timeout_s,
            user_agent=config.user_agent,
            max_workers=config.max_workers,
        )

    depth = 0
    try:
        while depth < config.max_depth:
            frontier = [node.address for node in sitemap.nodes_at_depth(depth)]
            results = fetcher.fetch_all(frontier)
            added_any = merge_results(sitemap, results, stats)
            logger.info(
                "Depth %d: fetched %d pages, sitemap now has %d pages",
                depth, len(frontier), len(sitemap),
            )
            if not added_any:
                break
            depth += 1
    finally:
        if owns_fetcher:
            fetcher.close()

    sitemap.finish(depth)
    logger.info("Crawl finished at depth %d with %d pages", depth, len(sitemap))
    return sitemap
