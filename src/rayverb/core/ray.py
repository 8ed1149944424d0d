"""Ray data structure and direction sampling for acoustic ray tracing.

A ray is an origin point plus a direction vector. The direction does not need
to be unit length: intersection routines report Euclidean distances from the
origin, so scaling the direction never changes a result.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.core.ray import Ray, ray_at, vec3
    >>> # Use ray_at(Ray(origin=..., direction=...), 2.0) within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from rayverb.core.vector import unit, vec3

# Reflected rays start this far along their new direction so the surface they
# leave does not occlude them
REFLECTION_OFFSET = 1e-5


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of travel (vec3). Must be non-zero; it need
            not be normalized.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f64) -> vec3:
    """Compute the point origin + t * direction."""
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction within a Taichi kernel."""
    return Ray(origin=origin, direction=direction)


@ti.func
def offset_ray(point: vec3, direction: vec3) -> Ray:
    """Build the outgoing ray of a reflection at ``point``.

    The origin is nudged by REFLECTION_OFFSET along the unit direction so the
    next wall search does not report the emitting surface again.
    """
    d = unit(direction)
    return Ray(origin=point + d * REFLECTION_OFFSET, direction=d)


@ti.func
def random_spherical_direction() -> vec3:
    """Draw an emission direction for a profiling trial.

    Draws u uniform in [-1, 1) and t uniform in [0, pi), then returns
    ((1 - u^2) cos t, (1 - u^2) sin t, u).

    This is not a uniform distribution on the sphere: the planar radius should
    be sqrt(1 - u^2), and t only covers half a turn, so every direction has
    y >= 0. Kernels built from it depend on this distribution, so it is kept
    as is. The vector is never zero: when u == 0 its xy part has length 1.
    """
    u = ti.random(ti.f64) * 2.0 - 1.0
    t = ti.random(ti.f64) * tm.pi
    r = 1.0 - u * u
    return vec3(r * ti.cos(t), r * ti.sin(t), u)
