"""
Sitemap tree: discovered pages and the first-discovery edges between them.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import urljoin

from sitemapper.urls import hostname, registrable_domain

logger = logging.getLogger(__name__)

# Spaces per depth level in the text rendering
INDENT_SPACES = 2


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


class SitemapError(Exception):
    """An edge could not be inserted into the sitemap."""


class NoRootError(SitemapError):
    pass


class UnknownSourceError(SitemapError):
    pass


@dataclass(slots=True)
class Node:
    """A single discovered page and the pages first discovered from it."""
    address: str
    created_at: str = field(default_factory=utc_now_iso)
    children: List[Node] = field(default_factory=list)

    def add_child(self, node: Node) -> None:
        self.children.append(node)

    def walk(self) -> Iterator[Node]:
        """Pre-order traversal starting at this node."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_text(self, depth: int = 0) -> str:
        lines = [" " * (depth * INDENT_SPACES) + self.address + "\n"]
        lines.extend(child.to_text(depth + 1) for child in self.children)
        return "".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "created_at": self.created_at,
            "children": [child.to_dict() for child in self.children],
        }


class SiteMap:
    """
    Root node plus crawl metadata and a deduplicating address index.

    The index maps every address in the tree to its node. It is only a
    lookup structure: nodes are owned by their parent's `children` list
    (the root by the sitemap itself). An address is attached at most once,
    so the tree stays loop-free however cyclic the site's link graph is.
    """

    def __init__(self, max_depth: int = 0) -> None:
        self.root: Optional[Node] = None
        self.registrable_domain: Optional[str] = None
        self.max_depth = max_depth
        self.achieved_depth = 0
        self.created_at = utc_now_iso()
        self.finished_at: Optional[str] = None
        self._index: Dict[str, Node] = {}

    def __contains__(self, address: object) -> bool:
        return address in self._index

    def __len__(self) -> int:
        return len(self._index)

    def __str__(self) -> str:
        return self.to_text()

    def get(self, address: str) -> Optional[Node]:
        return self._index.get(address)

    def set_root(self, address: str) -> bool:
        """
        Create the root node from `address`.

        Returns False, leaving the tree untouched, if a root is already set.
        A root whose registrable domain cannot be computed is still set, but
        no link will be accepted as part of the site.
        """
        if self.root is not None:
            return False
        self.root = Node(address)
        self._index[address] = self.root
        self.registrable_domain = registrable_domain(address)
        if self.registrable_domain is None:
            logger.warning(
                "Could not determine the registrable domain of %s; "
                "no links will be added to the sitemap", address,
            )
        return True

    def add_edge(self, from_address: str, to_address: str) -> bool:
        """
        Attach `to_address` as a child of `from_address`.

        Returns True if a new node was created and False if `to_address` is
        already in the tree (from any parent). Raises NoRootError if there is
        no root and UnknownSourceError if `from_address` is not in the tree;
        nothing is modified in either case.
        """
        if self.root is None:
            raise NoRootError(f"no root set, cannot add {to_address}")
        if not hostname(to_address):
            to_address = urljoin(self.root.address, to_address)

        from_node = self._index.get(from_address)
        if from_node is None:
            raise UnknownSourceError(f"source {from_address} is not in the sitemap")
        if to_address in self._index:
            return False

        node = Node(to_address)
        from_node.add_child(node)
        self._index[to_address] = node
        return True

    def nodes_at_depth(self, depth: int) -> List[Node]:
        """Nodes exactly `depth` edges below the root, in insertion order."""
        if self.root is None or depth < 0:
            return []
        return _nodes_at_depth(self.root, 0, depth)

    def finish(self, achieved_depth: int) -> None:
        self.achieved_depth = achieved_depth
        self.finished_at = utc_now_iso()

    def to_text(self) -> str:
        """Indented pre-order listing of every address, one per line."""
        if self.root is None:
            return ""
        return self.root.to_text()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root.to_dict() if self.root is not None else None,
            "registrable_domain": self.registrable_domain,
            "max_depth": self.max_depth,
            "achieved_depth": self.achieved_depth,
            "created_at": self.created_at,
            "finished_at": self.finished_at,
        }

    def to_json(self, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def _nodes_at_depth(node: Node, current: int, target: int) -> List[Node]:
    if current == target:
        return [node]
    found: List[Node] = []
    for child in node.children:
        found.extend(_nodes_at_depth(child, current + 1, target))
    return found
