"""
Web crawler that maps a single site breadth-first from a seed URL.
Outputs the discovered pages as a tree (text or JSON).
"""
from sitemapper.core import crawl, CrawlConfig, CrawlStats
from sitemapper.tree import Node, SiteMap

__version__ = "1.0.0"
__all__ = ["crawl", "CrawlConfig", "CrawlStats", "Node", "SiteMap"]
