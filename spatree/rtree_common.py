"""Node and entry types and the algorithms shared by the R-tree family."""

from __future__ import annotations

import heapq
import itertools
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from functools import reduce
from typing import Any

from .geometry import euclidean_distance_sq

Metric = Callable[[Any, Any], float]


@dataclass(eq=False)
class Entry:
    """A slot in a node: either an object (``child`` is None) or a subtree."""

    mbr: Any
    obj: Any = None
    child: Node | None = None


@dataclass(eq=False)
class Node:
    """A tree node holding entries; leaf nodes hold object entries only."""

    entries: list[Entry] = field(default_factory=list)
    is_leaf: bool = True


def compute_group_mbr(entries: Iterable[Entry]) -> Any:
    """The bounding volume of all entries, or None when there are none."""
    it = iter(entries)
    first = next(it, None)
    if first is None:
        return None
    return reduce(lambda acc, entry: acc.union(entry.mbr), it, first.mbr)


def _matches(node: Node, query: Any) -> Iterator[Any]:
    for entry in node.entries:
        if not entry.mbr.intersects(query):
            continue
        if node.is_leaf:
            if entry.child is None:
                yield entry.obj
        elif entry.child is not None:
            yield from _matches(entry.child, query)


def search_node(node: Node, query: Any) -> list[Any]:
    """Every object below ``node`` whose bounding volume intersects ``query``."""
    return list(_matches(node, query))


def _delete(
    node: Node, obj: Any, obj_mbr: Any, min_entries: int, orphans: list[Entry]
) -> bool:
    if node.is_leaf:
        pos = next(
            (i for i, e in enumerate(node.entries) if e.child is None and e.obj == obj),
            None,
        )
        if pos is None:
            return False
        del node.entries[pos]
        return True

    deleted = False
    underfull: list[int] = []
    for i, entry in enumerate(node.entries):
        if entry.child is None or not entry.mbr.intersects(obj_mbr):
            continue
        if _delete(entry.child, obj, obj_mbr, min_entries, orphans):
            deleted = True
            if len(entry.child.entries) < min_entries:
                underfull.append(i)
            else:
                new_mbr = compute_group_mbr(entry.child.entries)
                if new_mbr is not None:
                    entry.mbr = new_mbr

    for i in reversed(underfull):
        removed = node.entries.pop(i)
        if removed.child is not None:
            orphans.extend(removed.child.entries)
    return deleted


def delete_entry(
    node: Node, obj: Any, obj_mbr: Any, min_entries: int
) -> tuple[bool, list[Entry]]:
    """Remove ``obj`` from the subtree rooted at ``node``.

    Returns whether anything was removed, and the entries of children that
    fell below ``min_entries`` and were dropped; the caller reinserts them.
    """
    orphans: list[Entry] = []
    deleted = _delete(node, obj, obj_mbr, min_entries, orphans)
    return deleted, orphans


def knn_search(
    root: Node, query: Any, k: int, metric: Metric = euclidean_distance_sq
) -> list[Any]:
    """The ``k`` objects nearest to ``query``, nearest first.

    Pruning uses Euclidean box distances, so metrics that disagree with
    Euclidean distance may give inexact results.
    """
    if k <= 0:
        return []

    tie = itertools.count()
    candidates = [(e.mbr.min_distance(query) ** 2, next(tie), e) for e in root.entries]
    heapq.heapify(candidates)

    # Max-heap of found objects keyed on (distance, insertion order).
    results: list[tuple[float, int, Any]] = []
    order = itertools.count(1)

    def worst() -> float:
        return -results[0][0]

    while candidates:
        dist, _, entry = heapq.heappop(candidates)
        if len(results) >= k and dist > worst():
            break
        if entry.child is None:
            d_sq = metric(query, entry.obj)
            if len(results) < k:
                heapq.heappush(results, (-d_sq, -next(order), entry.obj))
            elif d_sq < worst():
                heapq.heapreplace(results, (-d_sq, -next(order), entry.obj))
        else:
            for child_entry in entry.child.entries:
                d_sq = child_entry.mbr.min_distance(query) ** 2
                if len(results) < k or d_sq < worst():
                    heapq.heappush(candidates, (d_sq, next(tie), child_entry))

    ranked = sorted(results, key=lambda item: (-item[0], -item[1]))
    return [obj for _, _, obj in ranked]


def range_search(
    root: Node, query: Any, radius: float, metric: Metric = euclidean_distance_sq
) -> list[Any]:
    """All objects within ``radius`` of ``query`` under ``metric``."""
    volume = query.mbr().from_point_radius(query, radius)
    limit = radius * radius
    return [obj for obj in search_node(root, volume) if metric(query, obj) <= limit]