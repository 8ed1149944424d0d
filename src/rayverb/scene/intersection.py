"""Scene-level primitive storage and ray intersection.

Wall primitives of every kind live in one tagged Structure-of-Arrays table:
each slot stores a PrimitiveKind tag, up to four points and a radius.
Segments use points a-b, triangles a-c, quads a-d and spheres use a as the
center plus the radius. The microphone target has its own single slot, so it
can be any kind and never takes part in the wall search.

The module also owns a one-primitive probe used by the host-side shapes
(rayverb.scene.shapes) to answer single ray queries from Python.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.scene.intersection import (
    ...     PrimitiveKind, add_primitive, set_target, clear_scene
    ... )
    >>> clear_scene()
    >>> add_primitive(PrimitiveKind.TRIANGLE, [(0, 0, 0), (1, 0, 0), (0, 1, 0)])
    >>> set_target(PrimitiveKind.SPHERE, [(0, 0, 5)], radius=1.0)
    >>> # Use intersect_walls / intersect_target within a Taichi kernel
"""

from collections.abc import Sequence
from enum import IntEnum
from typing import NamedTuple

import taichi as ti

from rayverb.core.vector import reflect, unit, vec3
from rayverb.geometry.quad import Quad, hit_quad
from rayverb.geometry.record import HitRecord, make_miss_record
from rayverb.geometry.segment import Segment, hit_segment
from rayverb.geometry.sphere import Sphere, hit_sphere
from rayverb.geometry.triangle import Triangle, hit_triangle


class PrimitiveKind(IntEnum):
    """Tag identifying the shape stored in a primitive slot."""

    SEGMENT = 0
    TRIANGLE = 1
    QUAD = 2
    SPHERE = 3


# Number of points each kind stores in slots a..d
POINTS_PER_KIND = {
    PrimitiveKind.SEGMENT: 2,
    PrimitiveKind.TRIANGLE: 3,
    PrimitiveKind.QUAD: 4,
    PrimitiveKind.SPHERE: 1,
}

# Maximum number of wall primitives supported in the scene
MAX_PRIMITIVES = 1024

# Wall hits closer than this to the ray origin are treated as self-hits
WALL_MIN_DISTANCE = 1e-7

# Marks an empty target slot
NO_TARGET = -1

Point = tuple[float, float, float]

# Wall storage: Structure of Arrays layout
prim_kinds = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
prim_a = ti.Vector.field(3, dtype=ti.f64, shape=MAX_PRIMITIVES)
prim_b = ti.Vector.field(3, dtype=ti.f64, shape=MAX_PRIMITIVES)
prim_c = ti.Vector.field(3, dtype=ti.f64, shape=MAX_PRIMITIVES)
prim_d = ti.Vector.field(3, dtype=ti.f64, shape=MAX_PRIMITIVES)
prim_radii = ti.field(dtype=ti.f64, shape=MAX_PRIMITIVES)
num_primitives = ti.field(dtype=ti.i32, shape=())

# Target storage: a single tagged slot
target_kind = ti.field(dtype=ti.i32, shape=())
target_a = ti.Vector.field(3, dtype=ti.f64, shape=())
target_b = ti.Vector.field(3, dtype=ti.f64, shape=())
target_c = ti.Vector.field(3, dtype=ti.f64, shape=())
target_d = ti.Vector.field(3, dtype=ti.f64, shape=())
target_radius = ti.field(dtype=ti.f64, shape=())

# Probe storage for single queries issued from Python
_probe_kind = ti.field(dtype=ti.i32, shape=())
_probe_a = ti.Vector.field(3, dtype=ti.f64, shape=())
_probe_b = ti.Vector.field(3, dtype=ti.f64, shape=())
_probe_c = ti.Vector.field(3, dtype=ti.f64, shape=())
_probe_d = ti.Vector.field(3, dtype=ti.f64, shape=())
_probe_radius = ti.field(dtype=ti.f64, shape=())
_probe_origin = ti.Vector.field(3, dtype=ti.f64, shape=())
_probe_direction = ti.Vector.field(3, dtype=ti.f64, shape=())
_probe_hit = ti.field(dtype=ti.i32, shape=())
_probe_distance = ti.field(dtype=ti.f64, shape=())
_probe_point = ti.Vector.field(3, dtype=ti.f64, shape=())
_probe_normal = ti.Vector.field(3, dtype=ti.f64, shape=())
_probe_reflected = ti.Vector.field(3, dtype=ti.f64, shape=())

target_kind[None] = NO_TARGET


def _pad_points(kind: PrimitiveKind, points: Sequence[Sequence[float]]) -> list[Point]:
    """Validate the point count for ``kind`` and pad to four points."""
    expected = POINTS_PER_KIND[PrimitiveKind(kind)]
    if len(points) != expected:
        raise ValueError(
            f"{PrimitiveKind(kind).name} needs {expected} points, got {len(points)}"
        )
    padded = [(float(p[0]), float(p[1]), float(p[2])) for p in points]
    while len(padded) < 4:
        padded.append((0.0, 0.0, 0.0))
    return padded


def clear_scene() -> None:
    """Remove all wall primitives and the target.

    The field data is not cleared but will be overwritten when new
    primitives are added.
    """
    num_primitives[None] = 0
    target_kind[None] = NO_TARGET


def add_primitive(
    kind: PrimitiveKind,
    points: Sequence[Sequence[float]],
    radius: float = 0.0,
) -> int:
    """Add a wall primitive to the scene.

    Args:
        kind: The primitive kind.
        points: 2 points for a segment, 3 for a triangle, 4 (clockwise) for
            a quad, 1 (the center) for a sphere.
        radius: The sphere radius; ignored for other kinds.

    Returns:
        The slot index of the added primitive.

    Raises:
        ValueError: If the number of points does not match the kind.
        RuntimeError: If the maximum number of primitives is exceeded.
    """
    padded = _pad_points(kind, points)
    idx = num_primitives[None]
    if idx >= MAX_PRIMITIVES:
        raise RuntimeError(f"Maximum number of primitives ({MAX_PRIMITIVES}) exceeded")
    prim_kinds[idx] = int(kind)
    prim_a[idx] = padded[0]
    prim_b[idx] = padded[1]
    prim_c[idx] = padded[2]
    prim_d[idx] = padded[3]
    prim_radii[idx] = float(radius)
    num_primitives[None] = idx + 1
    return idx


def set_target(
    kind: PrimitiveKind,
    points: Sequence[Sequence[float]],
    radius: float = 0.0,
) -> None:
    """Store the target primitive, replacing any previous target.

    Args:
        kind: The primitive kind of the target.
        points: Points as for :func:`add_primitive`.
        radius: The sphere radius; ignored for other kinds.
    """
    padded = _pad_points(kind, points)
    target_a[None] = padded[0]
    target_b[None] = padded[1]
    target_c[None] = padded[2]
    target_d[None] = padded[3]
    target_radius[None] = float(radius)
    target_kind[None] = int(kind)


def clear_target() -> None:
    """Remove the target primitive."""
    target_kind[None] = NO_TARGET


def has_target() -> bool:
    """Check whether a target primitive is set."""
    return int(target_kind[None]) != NO_TARGET


def get_primitive_count() -> int:
    """Get the number of wall primitives in the scene."""
    return int(num_primitives[None])


@ti.func
def hit_primitive(
    kind: ti.i32,
    a: vec3,
    b: vec3,
    c: vec3,
    d: vec3,
    radius: ti.f64,
    ray_origin: vec3,
    ray_direction: vec3,
) -> HitRecord:
    """Dispatch a ray query to the intersection routine for ``kind``.

    Returns:
        The primitive's HitRecord, or a miss for an unknown kind.
    """
    rec = make_miss_record()
    if kind == int(PrimitiveKind.SEGMENT):
        rec = hit_segment(ray_origin, ray_direction, Segment(a=a, b=b))
    elif kind == int(PrimitiveKind.TRIANGLE):
        rec = hit_triangle(ray_origin, ray_direction, Triangle(a=a, b=b, c=c))
    elif kind == int(PrimitiveKind.QUAD):
        rec = hit_quad(ray_origin, ray_direction, Quad(a=a, b=b, c=c, d=d))
    elif kind == int(PrimitiveKind.SPHERE):
        rec = hit_sphere(ray_origin, ray_direction, Sphere(center=a, radius=radius))
    return rec


@ti.func
def intersect_walls(ray_origin: vec3, ray_direction: vec3) -> HitRecord:
    """Find the nearest wall hit along a ray.

    Scans every stored primitive and keeps the closest intersection whose
    distance exceeds WALL_MIN_DISTANCE.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray.

    Returns:
        The closest HitRecord, or a miss if the ray escapes.
    """
    result = make_miss_record()
    n = num_primitives[None]
    for i in range(n):
        rec = hit_primitive(
            prim_kinds[i],
            prim_a[i],
            prim_b[i],
            prim_c[i],
            prim_d[i],
            prim_radii[i],
            ray_origin,
            ray_direction,
        )
        if rec.hit == 1 and rec.distance > WALL_MIN_DISTANCE:
            if result.hit == 0 or rec.distance < result.distance:
                result = rec
    return result


@ti.func
def intersect_target(ray_origin: vec3, ray_direction: vec3) -> HitRecord:
    """Test a ray against the target slot alone.

    Returns:
        The target's HitRecord, or a miss if no target is set.
    """
    return hit_primitive(
        target_kind[None],
        target_a[None],
        target_b[None],
        target_c[None],
        target_d[None],
        target_radius[None],
        ray_origin,
        ray_direction,
    )


# =============================================================================
# Single Queries from Python
# =============================================================================


class ProbeResult(NamedTuple):
    """Outcome of a single ray query against one primitive.

    Attributes:
        point: The intersection point.
        distance: Distance from the ray origin to the point.
        normal: Unit reflection normal at the point.
        reflected: Unit direction of the specular reflection.
    """

    point: Point
    distance: float
    normal: Point
    reflected: Point


def _read_vec(field) -> Point:
    v = field[None]
    return (float(v[0]), float(v[1]), float(v[2]))


@ti.kernel
def _run_probe():
    origin = _probe_origin[None]
    direction = _probe_direction[None]
    rec = hit_primitive(
        _probe_kind[None],
        _probe_a[None],
        _probe_b[None],
        _probe_c[None],
        _probe_d[None],
        _probe_radius[None],
        origin,
        direction,
    )
    reflected = vec3(0.0, 0.0, 0.0)
    if rec.hit == 1:
        reflected = reflect(unit(direction), rec.normal)
    _probe_hit[None] = rec.hit
    _probe_distance[None] = rec.distance
    _probe_point[None] = rec.point
    _probe_normal[None] = rec.normal
    _probe_reflected[None] = reflected


def probe_primitive(
    kind: PrimitiveKind,
    points: Sequence[Sequence[float]],
    radius: float,
    origin: Sequence[float],
    direction: Sequence[float],
) -> ProbeResult | None:
    """Intersect one ray with one primitive outside of any scene.

    Args:
        kind: The primitive kind.
        points: Points as for :func:`add_primitive`.
        radius: The sphere radius; ignored for other kinds.
        origin: The ray origin.
        direction: The ray direction (non-zero).

    Returns:
        A ProbeResult, or None if the ray misses.
    """
    padded = _pad_points(kind, points)
    _probe_kind[None] = int(kind)
    _probe_a[None] = padded[0]
    _probe_b[None] = padded[1]
    _probe_c[None] = padded[2]
    _probe_d[None] = padded[3]
    _probe_radius[None] = float(radius)
    _probe_origin[None] = (float(origin[0]), float(origin[1]), float(origin[2]))
    _probe_direction[None] = (float(direction[0]), float(direction[1]), float(direction[2]))

    _run_probe()

    if int(_probe_hit[None]) == 0:
        return None
    return ProbeResult(
        point=_read_vec(_probe_point),
        distance=float(_probe_distance[None]),
        normal=_read_vec(_probe_normal),
        reflected=_read_vec(_probe_reflected),
    )
