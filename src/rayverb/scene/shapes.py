"""Host-side shapes with validation and single-ray queries.

These frozen dataclasses describe scene geometry in plain Python. They are
validated on construction, uploaded into the Taichi scene fields by
rayverb.scene.manager, and can answer a one-off ray query through
``ray_intersection`` and ``ray_reflection``. Each query runs the same Taichi
intersection routine the tracer uses, on a one-primitive probe.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.scene.shapes import Ray, Sphere
    >>> sphere = Sphere(center=(0, 0, 5), radius=1.0)
    >>> sphere.ray_intersection(Ray(origin=(0, 0, 0), direction=(0, 0, 1)))
    (0.0, 0.0, 4.0)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar

import numpy as np

from rayverb.core.vector import as_point, np_barycentric
from rayverb.errors import InvalidGeometryError
from rayverb.geometry.box import box_faces
from rayverb.scene.intersection import PrimitiveKind, ProbeResult, probe_primitive

Point = tuple[float, float, float]

# Relative tolerance for degenerate and non-coplanar checks
GEOMETRY_TOLERANCE = 1e-9


def _to_point(value) -> Point:
    arr = as_point(value)
    return (float(arr[0]), float(arr[1]), float(arr[2]))


def _is_degenerate(u: np.ndarray, v: np.ndarray) -> bool:
    """True if u and v span no area (relative to their lengths)."""
    area = np.linalg.norm(np.cross(u, v))
    return area <= GEOMETRY_TOLERANCE * np.linalg.norm(u) * np.linalg.norm(v)


@dataclass(frozen=True)
class Ray:
    """A host-side ray.

    Attributes:
        origin: The starting point.
        direction: The direction of travel (non-zero, need not be unit).
    """

    origin: Point
    direction: Point

    def __post_init__(self) -> None:
        object.__setattr__(self, "origin", _to_point(self.origin))
        object.__setattr__(self, "direction", _to_point(self.direction))
        if not np.any(np.asarray(self.direction)):
            raise ValueError("Ray direction must be non-zero")


class Visible(ABC):
    """Base class giving a shape the single-ray query API.

    Subclasses provide ``kind``, ``points`` and ``radius``.
    """

    kind: ClassVar[PrimitiveKind]
    radius: float = 0.0

    @property
    @abstractmethod
    def points(self) -> list[Point]:
        """Defining points in the order the primitive table stores them."""

    def _probe(self, ray) -> ProbeResult | None:
        return probe_primitive(self.kind, self.points, self.radius, ray.origin, ray.direction)

    def ray_intersection(self, ray) -> Point | None:
        """Nearest forward intersection of ``ray`` with this shape alone.

        Args:
            ray: Any object with ``origin`` and ``direction`` (a Ray or a
                Segment).

        Returns:
            The intersection point, or None on a miss.
        """
        result = self._probe(ray)
        return None if result is None else result.point

    def ray_reflection(self, ray) -> Ray | None:
        """Specular reflection of ``ray`` off this shape.

        Returns:
            A Ray starting at the intersection point with unit reflected
            direction, or None on a miss.
        """
        result = self._probe(ray)
        if result is None:
            return None
        return Ray(origin=result.point, direction=result.reflected)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind.name.lower(),
            "points": [list(p) for p in self.points],
        }
        if self.kind == PrimitiveKind.SPHERE:
            data["radius"] = self.radius
        return data


@dataclass(frozen=True)
class Segment(Visible):
    """A wall edge from a to b. Also usable as a ray from a toward b."""

    a: Point
    b: Point

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.SEGMENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "a", _to_point(self.a))
        object.__setattr__(self, "b", _to_point(self.b))
        if self.a == self.b:
            raise InvalidGeometryError(f"Segment endpoints coincide at {self.a}")

    @property
    def points(self) -> list[Point]:
        return [self.a, self.b]

    @property
    def origin(self) -> Point:
        return self.a

    @property
    def direction(self) -> Point:
        return _to_point(np.subtract(self.b, self.a))

    @property
    def length(self) -> float:
        return float(np.linalg.norm(np.subtract(self.b, self.a)))


@dataclass(frozen=True)
class Triangle(Visible):
    """A triangle with corners a, b, c; normal is (b - a) x (c - a)."""

    a: Point
    b: Point
    c: Point

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.TRIANGLE

    def __post_init__(self) -> None:
        for name in ("a", "b", "c"):
            object.__setattr__(self, name, _to_point(getattr(self, name)))
        a, b, c = (np.asarray(p) for p in self.points)
        if _is_degenerate(b - a, c - a):
            raise InvalidGeometryError(f"Triangle {self.points} has zero area")

    @property
    def points(self) -> list[Point]:
        return [self.a, self.b, self.c]

    @property
    def normal(self) -> Point:
        a, b, c = (np.asarray(p) for p in self.points)
        return _to_point(np.cross(b - a, c - a))

    def barycentric(self, point) -> tuple[float, float, float]:
        """Barycentric weights (alpha, beta, gamma) of a point in the plane."""
        a, b, c = (np.asarray(p) for p in self.points)
        return np_barycentric(as_point(point), a, b, c)


@dataclass(frozen=True)
class Quad(Visible):
    """A planar quad with clockwise corners a, b, c, d.

    Split into triangles (a, b, c) and (a, c, d), which must both be
    non-degenerate and lie in one plane.
    """

    a: Point
    b: Point
    c: Point
    d: Point

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.QUAD

    def __post_init__(self) -> None:
        for name in ("a", "b", "c", "d"):
            object.__setattr__(self, name, _to_point(getattr(self, name)))
        a, b, c, d = (np.asarray(p) for p in self.points)
        if _is_degenerate(b - a, c - a) or _is_degenerate(c - a, d - a):
            raise InvalidGeometryError(f"Quad {self.points} has a degenerate triangle")

        n = np.cross(b - a, c - a)
        n /= np.linalg.norm(n)
        scale = max(np.linalg.norm(p - a) for p in (b, c, d))
        if abs(np.dot(d - a, n)) > GEOMETRY_TOLERANCE * scale:
            raise InvalidGeometryError(f"Quad {self.points} is not planar")

    @property
    def points(self) -> list[Point]:
        return [self.a, self.b, self.c, self.d]

    @property
    def normal(self) -> Point:
        """Unit normal of the quad's plane."""
        a, b, c = (np.asarray(p) for p in (self.a, self.b, self.c))
        n = np.cross(b - a, c - a)
        return _to_point(n / np.linalg.norm(n))


@dataclass(frozen=True)
class Sphere(Visible):
    """A sphere given by center and positive radius."""

    center: Point
    radius: float

    kind: ClassVar[PrimitiveKind] = PrimitiveKind.SPHERE

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", _to_point(self.center))
        object.__setattr__(self, "radius", float(self.radius))
        if not self.radius > 0.0:
            raise InvalidGeometryError(f"Sphere radius must be positive, got {self.radius}")

    @property
    def points(self) -> list[Point]:
        return [self.center]


Shape = Segment | Triangle | Quad | Sphere


def shape_from_dict(data: dict[str, Any]) -> Shape:
    """Rebuild a shape from the output of ``to_dict``.

    Raises:
        ValueError: If the kind is unknown.
    """
    kind = str(data.get("kind", "")).lower()
    points = data.get("points", [])
    if kind == "segment":
        return Segment(*points)
    if kind == "triangle":
        return Triangle(*points)
    if kind == "quad":
        return Quad(*points)
    if kind == "sphere":
        return Sphere(points[0], data.get("radius", 1.0))
    raise ValueError(f"Unknown shape kind: {kind}")


def make_box(
    corner,
    width: float,
    height: float,
    depth: float,
    include_front: bool = True,
) -> list[Quad]:
    """Build the faces of an axis-aligned box as Quads.

    Args:
        corner: The minimum corner.
        width: Extent along x.
        height: Extent along y.
        depth: Extent along z.
        include_front: Whether to add the face at corner.z + depth.

    Returns:
        5 or 6 quads in the order back, right, left, top, bottom, front.

    Raises:
        InvalidGeometryError: If a dimension is not positive.
    """
    return [Quad(*face) for face in box_faces(_to_point(corner), width, height, depth, include_front)]
