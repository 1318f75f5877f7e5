"""An R*-tree over 2D or 3D points with forced reinsertion and margin-based splits."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from math import ceil
from typing import Any

from . import rtree_common
from .geometry import InvalidCapacityError, euclidean_distance_sq
from .rstar_split import choose_subtree, forced_reinsert, split_entries
from .rtree_common import Entry, Metric, Node, compute_group_mbr

logger = logging.getLogger(__name__)


@dataclass
class _Insertion:
    """State shared by every step of one insertion, reinsertions included."""

    reinsert_level: int | None = None
    queue: list[tuple[Entry, int]] = field(default_factory=list)


def _node_entry(group: list[Entry], is_leaf: bool) -> Entry:
    mbr = compute_group_mbr(group)
    if mbr is None:
        raise RuntimeError("a split produced an empty group")
    return Entry(mbr=mbr, child=Node(entries=list(group), is_leaf=is_leaf))


def _insert_recursive(
    node: Node, entry: Entry, max_entries: int, level: int, state: _Insertion
) -> tuple[list[Entry], int] | None:
    """Insert below ``node``; on overflow, empty ``node`` and return its entries and level."""
    if node.is_leaf:
        node.entries.append(entry)
    else:
        best = choose_subtree(node, entry)
        child = node.entries[best].child
        if child is None:
            raise RuntimeError("an inner node holds an object entry")
        overflow = _insert_recursive(child, entry, max_entries, level + 1, state)
        if overflow is not None:
            entries, overflow_level = overflow
            if state.reinsert_level == overflow_level:
                group1, group2 = split_entries(entries, max_entries)
                node.entries[best] = _node_entry(group1, child.is_leaf)
                node.entries.append(_node_entry(group2, child.is_leaf))
            else:
                if state.reinsert_level is None:
                    state.reinsert_level = overflow_level
                overflowed = Node(entries=entries, is_leaf=child.is_leaf)
                state.queue.extend((e, 0) for e in forced_reinsert(overflowed, max_entries))
                child.entries = overflowed.entries
        refreshed = node.entries[best]
        if refreshed.child is not None:
            new_mbr = compute_group_mbr(refreshed.child.entries)
            if new_mbr is not None:
                refreshed.mbr = new_mbr

    if len(node.entries) > max_entries:
        taken, node.entries = node.entries, []
        return taken, level
    return None


class RStarTree:
    """An R*-tree holding objects that expose ``mbr()``, such as points.

    Overfull nodes first give up some entries for reinsertion; a second
    overflow on the same level during one insertion splits the node.
    """

    def __init__(self, max_entries: int) -> None:
        if max_entries < 2:
            raise InvalidCapacityError(max_entries)
        self.max_entries = max_entries
        self.min_entries = ceil(max_entries * 0.4)
        self._root = Node()
        logger.debug("created R*-tree with max_entries %d", max_entries)

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
        logger.debug("inserting %r into R*-tree", obj)
        self._insert_entry(Entry(mbr=obj.mbr(), obj=obj))

    def _insert_entry(self, entry: Entry) -> None:
        state = _Insertion(queue=[(entry, 0)])
        while state.queue:
            item, level = state.queue.pop()
            overflow = _insert_recursive(self._root, item, self.max_entries, level, state)
            if overflow is None:
                continue
            entries, overflow_level = overflow
            root = self._root
            if state.reinsert_level == overflow_level:
                group1, group2 = split_entries(entries, self.max_entries)
                first = _node_entry(group1, root.is_leaf)
                second = _node_entry(group2, root.is_leaf)
                root.is_leaf = False
                root.entries = [first, second]
            else:
                if state.reinsert_level is None:
                    state.reinsert_level = overflow_level
                overflowed = Node(entries=entries, is_leaf=root.is_leaf)
                reinserted = forced_reinsert(overflowed, self.max_entries)
                root.entries = overflowed.entries
                state.queue.extend((e, 0) for e in reinserted)

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
        logger.debug("R*-tree range search with %r", query)
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
        logger.debug("deleting %r from R*-tree", obj)
        deleted, orphans = rtree_common.delete_entry(
            self._root, obj, obj.mbr(), self.min_entries
        )
        if deleted:
            if not self._root.is_leaf and not self._root.entries:
                self._root.is_leaf = True
            for entry in orphans:
                self._insert_entry(entry)
            root = self._root
            if not root.is_leaf and len(root.entries) == 1:
                only = root.entries.pop()
                if only.child is not None:
                    self._root = only.child
        return deleted

    def height(self) -> int:
        """Number of levels, counted down the first entry of each node."""
        height = 1
        node = self._root
        while not node.is_leaf:
            height += 1
            first = node.entries[0] if node.entries else None
            if first is None or first.child is None:
                break
            node = first.child
        return height