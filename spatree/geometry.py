"""Points, bounding rectangles and cubes, and the default distance metric."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

EPSILON = 1e-10
"""Side length of the degenerate box that bounds a single point."""


class InvalidCapacityError(ValueError):
    """Raised when a tree is created with a node capacity it cannot work with."""

    def __init__(self, capacity: int) -> None:
        super().__init__(f"invalid capacity: {capacity}")
        self.capacity = capacity


def _gap(value: float, low: float, extent: float) -> float:
    """Distance from ``value`` to the closed interval [low, low + extent]."""
    if value < low:
        return low - value
    high = low + extent
    if value > high:
        return value - high
    return 0.0


def _overlap_length(a_low: float, a_ext: float, b_low: float, b_ext: float) -> float:
    return min(a_low + a_ext, b_low + b_ext) - max(a_low, b_low)


@dataclass(frozen=True)
class Point2D:
    """A point in the plane carrying optional user data."""

    x: float
    y: float
    data: Any = None

    def mbr(self) -> Rectangle:
        """Return the tiny rectangle that bounds this point."""
        return Rectangle(self.x, self.y, EPSILON, EPSILON)


@dataclass(frozen=True)
class Point3D:
    """A point in space carrying optional user data."""

    x: float
    y: float
    z: float
    data: Any = None

    def mbr(self) -> Cube:
        """Return the tiny cube that bounds this point."""
        return Cube(self.x, self.y, self.z, EPSILON, EPSILON, EPSILON)


@dataclass(frozen=True)
class Rectangle:
    """An axis-aligned rectangle given by its lower corner and its size."""

    x: float
    y: float
    width: float
    height: float

    DIM: ClassVar[int] = 2

    def contains(self, point: Point2D) -> bool:
        """Whether the point lies inside the rectangle, edges included."""
        return (
            self.x <= point.x <= self.x + self.width
            and self.y <= point.y <= self.y + self.height
        )

    def area(self) -> float:
        return self.width * self.height

    def margin(self) -> float:
        """The perimeter of the rectangle."""
        return 2.0 * (self.width + self.height)

    def union(self, other: Rectangle) -> Rectangle:
        """The smallest rectangle enclosing both rectangles."""
        x1 = min(self.x, other.x)
        y1 = min(self.y, other.y)
        x2 = max(self.x + self.width, other.x + other.width)
        y2 = max(self.y + self.height, other.y + other.height)
        return Rectangle(x1, y1, x2 - x1, y2 - y1)

    def overlap(self, other: Rectangle) -> float:
        """The area shared by both rectangles."""
        w = _overlap_length(self.x, self.width, other.x, other.width)
        h = _overlap_length(self.y, self.height, other.y, other.height)
        if w <= 0 or h <= 0:
            return 0.0
        return w * h

    def intersects(self, other: Rectangle) -> bool:
        """Whether the rectangles touch or overlap."""
        return not (
            other.x > self.x + self.width
            or other.x + other.width < self.x
            or other.y > self.y + self.height
            or other.y + other.height < self.y
        )

    def enlargement(self, other: Rectangle) -> float:
        """How much the area grows when this rectangle is stretched to cover ``other``."""
        return self.union(other).area() - self.area()

    def center(self, dim: int) -> float:
        """The centre coordinate along axis ``dim`` (0 for x, 1 for y)."""
        if dim == 0:
            return self.x + self.width / 2.0
        if dim == 1:
            return self.y + self.height / 2.0
        raise ValueError(f"invalid dimension {dim} for a rectangle")

    def min_distance(self, point: Point2D) -> float:
        """The smallest Euclidean distance from the point to the rectangle."""
        dx = _gap(point.x, self.x, self.width)
        dy = _gap(point.y, self.y, self.height)
        return (dx * dx + dy * dy) ** 0.5

    @classmethod
    def from_point_radius(cls, point: Point2D, radius: float) -> Rectangle:
        """The square of side ``2 * radius`` centred on the point."""
        return cls(point.x - radius, point.y - radius, 2.0 * radius, 2.0 * radius)


@dataclass(frozen=True)
class Cube:
    """An axis-aligned box given by its lower corner and its size."""

    x: float
    y: float
    z: float
    width: float
    height: float
    depth: float

    DIM: ClassVar[int] = 3

    def contains(self, point: Point3D) -> bool:
        """Whether the point lies inside the box, faces included."""
        return (
            self.x <= point.x <= self.x + self.width
            and self.y <= point.y <= self.y + self.height
            and self.z <= point.z <= self.z + self.depth
        )

    def area(self) -> float:
        """The volume of the box."""
        return self.width * self.height * self.depth

    def margin(self) -> float:
        """The total length of the box's edges."""
        return 4.0 * (self.width + self.height + self.depth)

    def union(self, other: Cube) -> Cube:
        """The smallest box enclosing both boxes."""
        x1 = min(self.x, other.x)
        y1 = min(self.y, other.y)
        z1 = min(self.z, other.z)
        x2 = max(self.x + self.width, other.x + other.width)
        y2 = max(self.y + self.height, other.y + other.height)
        z2 = max(self.z + self.depth, other.z + other.depth)
        return Cube(x1, y1, z1, x2 - x1, y2 - y1, z2 - z1)

    def overlap(self, other: Cube) -> float:
        """The volume shared by both boxes."""
        w = _overlap_length(self.x, self.width, other.x, other.width)
        h = _overlap_length(self.y, self.height, other.y, other.height)
        d = _overlap_length(self.z, self.depth, other.z, other.depth)
        if w <= 0 or h <= 0 or d <= 0:
            return 0.0
        return w * h * d

    def intersects(self, other: Cube) -> bool:
        """Whether the boxes touch or overlap."""
        return not (
            other.x > self.x + self.width
            or other.x + other.width < self.x
            or other.y > self.y + self.height
            or other.y + other.height < self.y
            or other.z > self.z + self.depth
            or other.z + other.depth < self.z
        )

    def enlargement(self, other: Cube) -> float:
        """How much the volume grows when this box is stretched to cover ``other``."""
        return self.union(other).area() - self.area()

    def center(self, dim: int) -> float:
        """The centre coordinate along axis ``dim`` (0, 1 or 2)."""
        if dim == 0:
            return self.x + self.width / 2.0
        if dim == 1:
            return self.y + self.height / 2.0
        if dim == 2:
            return self.z + self.depth / 2.0
        raise ValueError(f"invalid dimension {dim} for a cube")

    def min_distance(self, point: Point3D) -> float:
        """The smallest Euclidean distance from the point to the box."""
        dx = _gap(point.x, self.x, self.width)
        dy = _gap(point.y, self.y, self.height)
        dz = _gap(point.z, self.z, self.depth)
        return (dx * dx + dy * dy + dz * dz) ** 0.5

    @classmethod
    def from_point_radius(cls, point: Point3D, radius: float) -> Cube:
        """The cube of side ``2 * radius`` centred on the point."""
        side = 2.0 * radius
        return cls(point.x - radius, point.y - radius, point.z - radius, side, side, side)


def _coords(point: Point2D | Point3D) -> tuple[float, ...]:
    if isinstance(point, Point3D):
        return (point.x, point.y, point.z)
    return (point.x, point.y)


def euclidean_distance_sq(a: Point2D | Point3D, b: Point2D | Point3D) -> float:
    """Squared Euclidean distance between two points of the same dimension."""
    ca, cb = _coords(a), _coords(b)
    if len(ca) != len(cb):
        raise ValueError("points must have the same dimension")
    return sum((p - q) ** 2 for p, q in zip(ca, cb))