"""Sphere primitive with closest-approach ray intersection.

The sphere is usually a microphone target rather than a wall. The
intersection projects the center onto the ray's line to get the point of
closest approach p, at perpendicular distance h from the center. When h is
no larger than the radius the line crosses the sphere at

    p -/+ sqrt(radius^2 - h^2) * unit(direction)

and the crossing nearest the origin in front of it is the hit.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.geometry.sphere import Sphere, hit_sphere, vec3
    >>> sphere = Sphere(center=vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti

from rayverb.core.vector import distance, dot, unit, vec3
from rayverb.geometry.record import HitRecord


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f64


@ti.func
def sphere_reflection_normal(sphere: Sphere, point: vec3) -> vec3:
    """Outward unit normal at a point on the sphere surface."""
    return unit(point - sphere.center)


@ti.func
def hit_sphere(ray_origin: vec3, ray_direction: vec3, sphere: Sphere) -> HitRecord:
    """Test for ray-sphere intersection.

    Both chord points are computed along the ray. The nearer one is returned
    if it lies in front of the origin, otherwise the farther one if that does
    (the origin is inside the sphere). A sphere entirely behind the origin is
    a miss.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (need not be normalized).
        sphere: The sphere to test.

    Returns:
        A HitRecord whose normal points away from the center.
    """
    dir_unit = unit(ray_direction)
    along = dot(sphere.center - ray_origin, dir_unit)
    closest = ray_origin + dir_unit * along
    h = distance(closest, sphere.center)

    did_hit = 0
    hit_distance = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    if h <= sphere.radius:
        # Clamp guards the tangent case against a tiny negative from rounding
        offset = ti.sqrt(ti.max(sphere.radius * sphere.radius - h * h, 0.0))
        near = along - offset
        far = along + offset
        t = -1.0
        if near > 0.0:
            t = near
        elif far > 0.0:
            t = far
        if t > 0.0:
            did_hit = 1
            hit_distance = t
            hit_point = ray_origin + dir_unit * t
            hit_normal = sphere_reflection_normal(sphere, hit_point)

    return HitRecord(hit=did_hit, distance=hit_distance, point=hit_point, normal=hit_normal)


@ti.func
def make_sphere(center: vec3, radius: ti.f64) -> Sphere:
    """Create a sphere from center and radius within a Taichi kernel."""
    return Sphere(center=center, radius=radius)
