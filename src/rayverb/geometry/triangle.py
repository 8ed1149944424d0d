"""Triangle primitive with plane-time intersection and barycentric bounds.

The triangle's (unnormalized) normal is n = (b - a) x (c - a). A ray meets
the supporting plane after the "time"

    t = ((a - origin) . n) / (direction . n)

measured in units of the direction vector. The plane point is inside the
triangle when all three barycentric weights lie in [0, 1], up to a tiny
tolerance.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.geometry.triangle import Triangle, hit_triangle, vec3
    >>> tri = Triangle(a=vec3(0, 0, 0), b=vec3(1, 0, 0), c=vec3(0, 1, 0))
    >>> # Use hit_triangle within a Taichi kernel
"""

import taichi as ti

from rayverb.core.vector import cross, dot, unit, vec3
from rayverb.geometry.record import HitRecord

# Slack on the barycentric bounds; keeps rays from slipping through seams
BARYCENTRIC_TOLERANCE = 1e-9


@ti.dataclass
class Triangle:
    """A triangle with vertices a, b, c.

    Attributes:
        a: First vertex (vec3).
        b: Second vertex (vec3).
        c: Third vertex (vec3).
    """

    a: vec3
    b: vec3
    c: vec3


@ti.func
def triangle_normal(tri: Triangle) -> vec3:
    """Unnormalized face normal (b - a) x (c - a)."""
    return cross(tri.b - tri.a, tri.c - tri.a)


@ti.func
def barycentric(tri: Triangle, p: vec3):
    """Barycentric weights of p with respect to the triangle.

    Args:
        tri: The triangle.
        p: A point on the triangle's plane.

    Returns:
        Tuple (alpha, beta, gamma) weighting a, b and c respectively.
        The weights always sum to 1.
    """
    u = tri.b - tri.a
    v = tri.c - tri.a
    w = p - tri.a
    n = cross(u, v)
    n2 = dot(n, n)
    gamma = dot(cross(u, w), n) / n2
    beta = dot(cross(w, v), n) / n2
    alpha = 1.0 - gamma - beta
    return alpha, beta, gamma


@ti.func
def triangle_contains(tri: Triangle, p: vec3) -> ti.i32:
    """Return 1 if the plane point p lies inside or on the triangle.

    Each weight may fall outside [0, 1] by BARYCENTRIC_TOLERANCE so points
    on a shared edge (a quad diagonal, a box seam) are claimed by at least
    one triangle despite rounding.
    """
    alpha, beta, gamma = barycentric(tri, p)
    lo = -BARYCENTRIC_TOLERANCE
    hi = 1.0 + BARYCENTRIC_TOLERANCE
    inside = 0
    if lo <= alpha <= hi and lo <= beta <= hi and lo <= gamma <= hi:
        inside = 1
    return inside


@ti.func
def hit_triangle(ray_origin: vec3, ray_direction: vec3, tri: Triangle) -> HitRecord:
    """Test for ray-triangle intersection.

    A ray parallel to the plane misses unless its origin is on the plane, in
    which case the time is zero; a zero time is never a forward hit.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (need not be normalized).
        tri: The triangle to test.

    Returns:
        A HitRecord whose normal is the unit face normal.
    """
    n = triangle_normal(tri)
    nd = dot(tri.a - ray_origin, n)  # normal distance to the plane
    nv = dot(ray_direction, n)  # normal velocity toward the plane

    did_hit = 0
    hit_distance = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    t = 0.0
    off_plane = 0
    if nv == 0.0:
        if nd != 0.0:
            off_plane = 1
    else:
        t = nd / nv

    if off_plane == 0:
        point = ray_origin + ray_direction * t
        travel = point - ray_origin
        if dot(ray_direction, travel) > 0.0:
            if triangle_contains(tri, point) == 1:
                did_hit = 1
                hit_point = point
                hit_distance = ti.sqrt(dot(travel, travel))
                hit_normal = unit(n)

    return HitRecord(hit=did_hit, distance=hit_distance, point=hit_point, normal=hit_normal)


@ti.func
def make_triangle(a: vec3, b: vec3, c: vec3) -> Triangle:
    """Create a triangle from three vertices within a Taichi kernel."""
    return Triangle(a=a, b=b, c=c)
