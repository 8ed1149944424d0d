"""Hit record shared by all primitive intersection routines."""

import taichi as ti

from rayverb.core.vector import vec3


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        distance: Euclidean distance from the ray origin to the hit point.
            Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        normal: Unit normal used for specular reflection at the hit point.
            Its sign is irrelevant to the reflection. Only valid if hit == 1.
    """

    hit: ti.i32
    distance: ti.f64
    point: vec3
    normal: vec3


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        distance=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
    )
