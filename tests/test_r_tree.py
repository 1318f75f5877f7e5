import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from spatree.geometry import (
    Cube,
    InvalidCapacityError,
    Point2D,
    Point3D,
    Rectangle,
    euclidean_distance_sq,
)
from spatree.r_tree import RTree

coord = st.floats(min_value=-100, max_value=100, allow_nan=False, allow_infinity=False)
coords_2d = st.lists(st.tuples(coord, coord), max_size=60)

EVERYTHING_2D = Rectangle(-1000.0, -1000.0, 2000.0, 2000.0)


def build(pairs, max_entries=4):
    tree = RTree(max_entries)
    points = [Point2D(x, y, i) for i, (x, y) in enumerate(pairs)]
    for p in points:
        tree.insert(p)
    return tree, points


@pytest.mark.parametrize("capacity", [0, 1])
def test_rejects_small_capacity(capacity):
    with pytest.raises(InvalidCapacityError) as info:
        RTree(capacity)
    assert info.value.capacity == capacity


def test_min_entries_derived_from_max():
    assert RTree(4).min_entries == 2
    assert RTree(16).min_entries == 7


def test_documented_2d_example():
    tree = RTree(4)
    pt = Point2D(10.0, 20.0)
    tree.insert(pt)
    assert tree.range_search_bbox(Rectangle(5.0, 15.0, 10.0, 10.0)) == [pt]


def test_documented_3d_example():
    tree = RTree(4)
    pt = Point3D(10.0, 20.0, 30.0)
    tree.insert(pt)
    assert tree.range_search_bbox(Cube(5.0, 15.0, 25.0, 10.0, 10.0, 10.0)) == [pt]


def test_bbox_search_excludes_outside_points():
    tree, points = build([(float(i), float(i)) for i in range(30)])
    found = tree.range_search_bbox(Rectangle(4.5, 4.5, 5.0, 5.0))
    assert sorted(p.data for p in found) == [5, 6, 7, 8, 9]


def test_knn_zero_returns_empty():
    tree, _ = build([(1.0, 1.0), (2.0, 2.0)])
    assert tree.knn_search(Point2D(0.0, 0.0), 0) == []


def test_knn_on_line():
    tree, points = build([(float(i), float(i)) for i in range(50)])
    result = tree.knn_search(Point2D(10.2, 10.2), 3)
    assert [p.data for p in result] == [10, 11, 9]


def test_knn_3d():
    tree = RTree(5)
    points = [Point3D(float(i), float(i), float(i), i) for i in range(40)]
    for p in points:
        tree.insert(p)
    result = tree.knn_search(Point3D(35.0, 35.0, 35.0), 1)
    assert result == [points[35]]


@settings(max_examples=60, deadline=None)
@given(coords_2d, coord, coord, st.integers(min_value=1, max_value=10))
def test_knn_returns_nearest_distances(pairs, qx, qy, k):
    tree, points = build(pairs)
    query = Point2D(qx, qy)
    result = tree.knn_search(query, k)
    got = [euclidean_distance_sq(query, p) for p in result]
    expected = sorted(euclidean_distance_sq(query, p) for p in points)[:k]
    assert got == expected


@settings(max_examples=60, deadline=None)
@given(coords_2d, coord, coord, st.floats(min_value=0, max_value=80))
def test_range_search_matches_filter(pairs, qx, qy, radius):
    tree, points = build(pairs)
    query = Point2D(qx, qy)
    found = {p.data for p in tree.range_search(query, radius)}
    expected = {
        p.data for p in points if euclidean_distance_sq(query, p) <= radius * radius
    }
    assert found == expected


@settings(max_examples=60, deadline=None)
@given(coords_2d, st.integers(min_value=2, max_value=8))
def test_insert_keeps_every_point_searchable(pairs, max_entries):
    tree, points = build(pairs, max_entries)
    assert len(tree) == len(points)
    assert sorted(p.data for p in tree.range_search_bbox(EVERYTHING_2D)) == list(
        range(len(points))
    )


def test_insert_bulk_then_search():
    tree = RTree(4)
    points = [Point2D(float(i), float(i % 7), i) for i in range(20)]
    tree.insert_bulk(points)
    assert len(tree) == 20
    found = tree.range_search_bbox(EVERYTHING_2D)
    assert sorted(p.data for p in found) == list(range(20))
    assert tree.knn_search(Point2D(3.0, 3.0), 1) == [points[3]]


def test_insert_bulk_empty_is_noop():
    tree = RTree(4)
    tree.insert_bulk([])
    assert len(tree) == 0
    assert tree.range_search_bbox(EVERYTHING_2D) == []


def test_delete_point():
    tree, points = build([(float(i), float(i)) for i in range(25)])
    target = points[12]
    assert tree.delete(target) is True
    assert target not in list(tree)
    assert len(tree) == 24
    assert tree.delete(target) is False


def test_delete_missing_point():
    tree, _ = build([(1.0, 1.0), (2.0, 2.0)])
    assert tree.delete(Point2D(50.0, 50.0)) is False
    assert len(tree) == 2


@settings(max_examples=60, deadline=None)
@given(coords_2d, st.data())
def test_delete_subset_leaves_rest(pairs, data):
    tree, points = build(pairs)
    doomed = data.draw(st.sets(st.sampled_from(range(len(points))), max_size=len(points))
                       if points else st.just(set()))
    for i in sorted(doomed):
        assert tree.delete(points[i]) is True
    remaining = sorted(p.data for p in tree.range_search_bbox(EVERYTHING_2D))
    assert remaining == sorted(set(range(len(points))) - doomed)
    assert len(tree) == len(points) - len(doomed)