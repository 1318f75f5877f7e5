"""An R-tree over 2D or 3D points with range, radius and kNN search."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Iterator
from math import ceil
from typing import Any

from . import rtree_common
from .geometry import InvalidCapacityError, euclidean_distance_sq
from .rtree_common import Entry, Metric, Node, compute_group_mbr

logger = logging.getLogger(__name__)

_TIE_TOLERANCE = sys.float_info.epsilon


def _insert_into(node: Node, entry: Entry) -> None:
    """Place ``entry`` below ``node``, descending by least enlargement."""
    if node.is_leaf:
        node.entries.append(entry)
        return

    best: Entry | None = None
    best_enlargement = float("inf")
    for candidate in node.entries:
        if candidate.child is None:
            continue
        enlargement = candidate.mbr.enlargement(entry.mbr)
        if enlargement < best_enlargement:
            best_enlargement = enlargement
            best = candidate
        elif abs(enlargement - best_enlargement) < _TIE_TOLERANCE:
            if best is not None and candidate.mbr.area() < best.mbr.area():
                best = candidate

    if best is None or best.child is None:
        node.entries.append(entry)
        return

    best.mbr = best.mbr.union(entry.mbr)
    _insert_into(best.child, entry)
    new_mbr = compute_group_mbr(best.child.entries)
    if new_mbr is not None:
        best.mbr = new_mbr


def _split_entries(entries: list[Entry]) -> tuple[list[Entry], list[Entry]]:
    """Split entries in two, seeding with the first two and growing the cheaper group."""
    if len(entries) < 2:
        return list(entries), []
    group1 = [entries[0]]
    group2 = [entries[1]]
    for entry in entries[2:]:
        mbr1 = compute_group_mbr(group1)
        mbr2 = compute_group_mbr(group2)
        if mbr1.enlargement(entry.mbr) < mbr2.enlargement(entry.mbr):
            group1.append(entry)
        else:
            group2.append(entry)
    return group1, group2


class RTree:
    """An R-tree holding objects that expose ``mbr()``, such as points.

    The root splits in two whenever it holds more than ``max_entries`` entries.
    """

    def __init__(self, max_entries: int) -> None:
        if max_entries < 2:
            raise InvalidCapacityError(max_entries)
        self.max_entries = max_entries
        self.min_entries = ceil(max_entries * 0.4)
        self._root = Node()
        logger.debug("created R-tree with max_entries %d", max_entries)

    def __iter__(self) -> Iterator[Any]:
        stack = [self._root]
        while stack:
            node = stack.pop()
            for entry in node.entries:
                if entry.child is None:
                    yield entry.obj
                else:
                    stack.append(entry.child)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def insert(self, obj: Any) -> None:
        """Add an object to the tree."""
        logger.debug("inserting %r into R-tree", obj)
        self._insert_entry(Entry(mbr=obj.mbr(), obj=obj))

    def _insert_entry(self, entry: Entry) -> None:
        _insert_into(self._root, entry)
        if len(self._root.entries) > self.max_entries:
            self._split_root()

    def _split_root(self) -> None:
        logger.debug("splitting R-tree root")
        root = self._root
        group1, group2 = _split_entries(root.entries)
        child1 = Node(entries=group1, is_leaf=root.is_leaf)
        child2 = Node(entries=group2, is_leaf=root.is_leaf)
        mbr1 = compute_group_mbr(group1)
        mbr2 = compute_group_mbr(group2)
        if mbr1 is None or mbr2 is None:
            raise RuntimeError("cannot split a root with fewer than two entries")
        root.is_leaf = False
        root.entries = [Entry(mbr=mbr1, child=child1), Entry(mbr=mbr2, child=child2)]

    def insert_bulk(self, objects: Iterable[Any]) -> None:
        """Add many objects, packing them into nodes of ``max_entries`` each."""
        entries = [Entry(mbr=obj.mbr(), obj=obj) for obj in objects]
        if not entries:
            return
        while len(entries) > self.max_entries:
            level: list[Entry] = []
            for start in range(0, len(entries), self.max_entries):
                chunk = entries[start : start + self.max_entries]
                mbr = compute_group_mbr(chunk)
                if mbr is not None:
                    level.append(
                        Entry(mbr=mbr, child=Node(entries=chunk, is_leaf=self._root.is_leaf))
                    )
            entries = level
            self._root.is_leaf = False
        self._root.entries.extend(entries)

    def range_search_bbox(self, query: Any) -> list[Any]:
        """All objects whose bounding volume intersects ``query``."""
        logger.debug("R-tree range search with %r", query)
        return rtree_common.search_node(self._root, query)

    def knn_search(
        self, query: Any, k: int, metric: Metric = euclidean_distance_sq
    ) -> list[Any]:
        """The ``k`` objects nearest to ``query``, nearest first."""
        return rtree_common.knn_search(self._root, query, k, metric)

    def range_search(
        self, query: Any, radius: float, metric: Metric = euclidean_distance_sq
    ) -> list[Any]:
        """All objects within ``radius`` of ``query`` under ``metric``."""
        return rtree_common.range_search(self._root, query, radius, metric)

    def delete(self, obj: Any) -> bool:
        """Remove an object equal to ``obj``; return whether one was found."""
        logger.debug("deleting %r from R-tree", obj)
        deleted, orphans = rtree_common.delete_entry(
            self._root, obj, obj.mbr(), self.min_entries
        )
        if deleted:
            for entry in orphans:
                self._insert_entry(entry)
            root = self._root
            if not root.is_leaf and len(root.entries) == 1:
                only = root.entries.pop()
                if only.child is not None:
                    self._root = only.child
        return deleted