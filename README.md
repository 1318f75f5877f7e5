# spatree

R-tree and R*-tree spatial indexes for 2D and 3D points, in pure Python with
no dependencies.

- `RTree` (`spatree.r_tree`): an R-tree that splits its root in two whenever it
  holds more than `max_entries` entries.
- `RStarTree` (`spatree.r_star_tree`): an R*-tree that first gives up some
  entries of an overfull node for reinsertion and splits along the axis with the
  smallest total margin on a second overflow.

Both trees support insertion, bulk insertion, deletion, search by bounding
volume, radius search and k-nearest-neighbour search, for `Point2D` and
`Point3D` objects alike.

## Geometry

`spatree.geometry` holds the building blocks:

- `Point2D(x, y, data=None)` and `Point3D(x, y, z, data=None)`: frozen points
  carrying an optional payload. `mbr()` returns a tiny box (sides of `1e-10`)
  around the point.
- `Rectangle(x, y, width, height)` and `Cube(x, y, z, width, height, depth)`:
  axis-aligned boxes given by their lower corner and size, with `contains`,
  `area` (the volume for a cube), `margin`, `union`, `overlap`, `intersects`,
  `enlargement`, `center(dim)`, `min_distance(point)` and the class method
  `from_point_radius(point, radius)`. `center` raises `ValueError` for an axis
  the box does not have.
- `euclidean_distance_sq(a, b)`: the default metric; raises `ValueError` for
  points of different dimension.
- `InvalidCapacityError`: a `ValueError` raised when a tree is created with an
  unusable capacity; its `capacity` attribute holds the rejected value.

## Usage

```python
from spatree.geometry import Point2D, Point3D, Rectangle
from spatree.r_tree import RTree
from spatree.r_star_tree import RStarTree

tree = RTree(4)
tree.insert(Point2D(10.0, 20.0, "a"))
hits = tree.range_search_bbox(Rectangle(5.0, 15.0, 10.0, 10.0))

tree3d = RStarTree(4)
tree3d.insert_bulk([Point3D(float(i), float(i), float(i), i) for i in range(100)])
closest = tree3d.knn_search(Point3D(35.0, 45.0, 35.0), 3)
within = tree3d.range_search(Point3D(35.0, 45.0, 35.0), 30.0)
removed = tree3d.delete(Point3D(1.0, 1.0, 1.0, 1))  # True
```

Both classes take the maximum number of entries per node; values below 2 raise
`InvalidCapacityError`. The minimum fill used when deleting is
`ceil(0.4 * max_entries)`; both are available as `max_entries` and
`min_entries`.

- `insert(obj)` adds any object with an `mbr()` method.
- `insert_bulk(objects)` packs the objects into nodes of `max_entries` each,
  level by level, and adds the result to the root.
- `range_search_bbox(query)` returns every object whose bounding box
  intersects `query` (a `Rectangle` or `Cube`).
- `range_search(query, radius, metric=euclidean_distance_sq)` returns the
  objects whose squared distance to `query` is at most `radius ** 2`.
- `knn_search(query, k, metric=euclidean_distance_sq)` returns up to `k`
  objects ordered from nearest to farthest; `k <= 0` gives an empty list.
- `delete(obj)` removes one object equal to `obj` (payload included) and
  returns whether one was found. Entries of nodes left underfull are
  reinserted.
- Trees are iterable over their objects, and `len()` counts them.
  `RStarTree.height()` reports the number of levels.

`metric` is any callable taking two points and returning a squared distance.
Search pruning uses Euclidean box distances, so a metric that does not agree
with Euclidean distance may give incomplete results.

## Lower-level pieces

`spatree.rtree_common` exposes the `Entry` and `Node` types and the shared
algorithms `compute_group_mbr`, `search_node`, `delete_entry`, `knn_search`
and `range_search`. `spatree.rstar_split` exposes the R*-tree heuristics
`choose_subtree`, `forced_reinsert` and `split_entries`.

## What it does not do

Trees live in memory only: there is no saving or loading of a tree, and no
command-line tool. The indexes hold points; there is no quadtree, octree or
k-d tree here.

## Tests

The tests use pytest and hypothesis, which the `test` extra installs.