"""Subtree choice, forced reinsertion and node splitting for the R*-tree."""

from __future__ import annotations

from math import ceil
from typing import Any

from .rtree_common import Entry, Node, compute_group_mbr

_TIE_EPSILON = 1e-10
"""Overlaps closer than this count as equal when picking a split."""

_MIN_FILL = 0.4
_REINSERT_FRACTION = 0.3


def _children_are_leaves(node: Node) -> bool:
    if not node.entries:
        return False
    first = node.entries[0]
    return first.child is not None and first.child.is_leaf


def choose_subtree(node: Node, entry: Entry) -> int:
    """Index of the entry of ``node`` under which ``entry`` should go.

    Just above the leaves the choice minimises overlap, then enlargement,
    then area; higher up it minimises enlargement, then area. The first
    best entry wins ties; an empty node gives 0.
    """
    if not node.entries:
        return 0

    if _children_are_leaves(node):

        def key(candidate: Entry) -> tuple[float, float, float]:
            overlap = sum(
                other.mbr.union(entry.mbr).overlap(other.mbr)
                for other in node.entries
                if other is not candidate
            )
            return (
                overlap,
                candidate.mbr.enlargement(entry.mbr),
                candidate.mbr.area(),
            )

    else:

        def key(candidate: Entry) -> tuple[float, float]:
            return candidate.mbr.enlargement(entry.mbr), candidate.mbr.area()

    keys = [key(candidate) for candidate in node.entries]
    return min(range(len(keys)), key=keys.__getitem__)


def _center(mbr: Any) -> tuple[float, ...]:
    return tuple(mbr.center(d) for d in range(mbr.DIM))


def forced_reinsert(node: Node, max_entries: int) -> list[Entry]:
    """Take out of ``node`` the entries farthest from its centre.

    ``ceil(0.3 * max_entries)`` entries are removed, farthest first, and
    returned; the rest stay in ``node``.
    """
    node_mbr = compute_group_mbr(node.entries)
    if node_mbr is None:
        return []
    count = ceil(max_entries * _REINSERT_FRACTION)
    node_center = _center(node_mbr)

    def dist_sq(entry: Entry) -> float:
        return sum((c - n) ** 2 for c, n in zip(_center(entry.mbr), node_center))

    node.entries.sort(key=dist_sq, reverse=True)
    removed = node.entries[:count]
    del node.entries[:count]
    return removed


def split_entries(entries: list[Entry], max_entries: int) -> tuple[list[Entry], list[Entry]]:
    """Split an overfull node's entries in two along the best axis.

    The axis is the one with the smallest total margin over all allowed
    distributions; along it the split with least overlap, then least area,
    is taken. Each group keeps at least ``ceil(0.4 * max_entries)`` entries.
    """
    min_entries = ceil(max_entries * _MIN_FILL)
    if min_entries < 1:
        raise ValueError(f"max_entries must be positive, got {max_entries}")
    if len(entries) < min_entries:
        raise ValueError(
            f"cannot split {len(entries)} entries with a minimum of {min_entries} per group"
        )

    items = list(entries)
    dims = items[0].mbr.DIM
    splits = range(min_entries, len(items) - min_entries + 1)

    best_axis = 0
    best_split = 0
    min_margin = float("inf")
    for dim in range(dims):
        items.sort(key=lambda e, d=dim: e.mbr.center(d))
        for k in splits:
            margin = (
                compute_group_mbr(items[:k]).margin() + compute_group_mbr(items[k:]).margin()
            )
            if margin < min_margin:
                min_margin = margin
                best_axis = dim
                best_split = k

    items.sort(key=lambda e: e.mbr.center(best_axis))

    best_overlap = float("inf")
    best_area = float("inf")
    for k in splits:
        mbr1 = compute_group_mbr(items[:k])
        mbr2 = compute_group_mbr(items[k:])
        overlap = mbr1.overlap(mbr2)
        area = mbr1.area() + mbr2.area()
        if overlap < best_overlap:
            best_overlap = overlap
            best_area = area
            best_split = k
        elif abs(overlap - best_overlap) < _TIE_EPSILON and area < best_area:
            best_area = area
            best_split = k

    return items[:best_split], items[best_split:]