"""Planar quad primitive built from two triangles.

A quad is given by four coplanar corners a, b, c, d in clockwise order. It is
split along the diagonal a-c into triangle (a, b, c) and triangle (a, c, d).
For a valid planar quad the two triangles only share that diagonal, so the
first triangle that reports a hit wins.

Quads are used for room walls (see rayverb.geometry.box) and for rectangular
microphone targets.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.geometry.quad import Quad, hit_quad, vec3
    >>> # Floor quad at z=0 spanning x=[0,1] and y=[0,1]
    >>> quad = Quad(
    ...     a=vec3(0, 0, 0), b=vec3(1, 0, 0), c=vec3(1, 1, 0), d=vec3(0, 1, 0)
    ... )
    >>> # Use hit_quad within a Taichi kernel
"""

import taichi as ti

from rayverb.core.vector import norm, unit, vec3
from rayverb.geometry.record import HitRecord
from rayverb.geometry.triangle import Triangle, hit_triangle, triangle_normal


@ti.dataclass
class Quad:
    """A planar quad with corners a, b, c, d in clockwise order.

    Attributes:
        a: First corner (vec3).
        b: Second corner (vec3).
        c: Third corner, opposite a (vec3).
        d: Fourth corner (vec3).
    """

    a: vec3
    b: vec3
    c: vec3
    d: vec3


@ti.func
def quad_first_triangle(quad: Quad) -> Triangle:
    """Triangle (a, b, c) of the quad."""
    return Triangle(a=quad.a, b=quad.b, c=quad.c)


@ti.func
def quad_second_triangle(quad: Quad) -> Triangle:
    """Triangle (a, c, d) of the quad."""
    return Triangle(a=quad.a, b=quad.c, c=quad.d)


@ti.func
def hit_quad(ray_origin: vec3, ray_direction: vec3, quad: Quad) -> HitRecord:
    """Test for ray-quad intersection.

    Tries triangle (a, b, c) first, then triangle (a, c, d).

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (need not be normalized).
        quad: The quad to test.

    Returns:
        The HitRecord of the matched triangle, or a miss.
    """
    rec = hit_triangle(ray_origin, ray_direction, quad_first_triangle(quad))
    if rec.hit == 0:
        rec = hit_triangle(ray_origin, ray_direction, quad_second_triangle(quad))
    return rec


@ti.func
def quad_normal(quad: Quad) -> vec3:
    """Unit normal of the quad's plane (right-hand rule over a, b, c)."""
    return unit(triangle_normal(quad_first_triangle(quad)))


@ti.func
def quad_area(quad: Quad) -> ti.f64:
    """Area of the quad as the sum of its two triangles."""
    first = norm(triangle_normal(quad_first_triangle(quad)))
    second = norm(triangle_normal(quad_second_triangle(quad)))
    return 0.5 * (first + second)


@ti.func
def make_quad(a: vec3, b: vec3, c: vec3, d: vec3) -> Quad:
    """Create a quad from four clockwise corners within a Taichi kernel."""
    return Quad(a=a, b=b, c=c, d=d)
