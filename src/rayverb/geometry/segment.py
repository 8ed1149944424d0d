"""Segment primitive with skew-line ray intersection.

A segment is a bounded wall edge between two endpoints. A ray almost never
meets a line in 3D exactly, so the intersection is the ray's point of closest
approach to the segment's line, accepted when it lies within
SEGMENT_TOLERANCE of the segment.

The closest approach uses the plane-normal operator
n = s x (s x r), where s is the segment direction and r the ray direction.
The plane through the segment with normal n contains the segment and the
common perpendicular of both lines, so intersecting the ray with that plane
yields the closest-approach point on the ray:

    d = ((a - origin) . n) / (r . n)

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.geometry.segment import Segment, hit_segment, vec3
    >>> seg = Segment(a=vec3(0, 0, 0), b=vec3(1, 0, 0))
    >>> # Use hit_segment within a Taichi kernel
"""

import taichi as ti

from rayverb.core.vector import dot, plane_normal, point_segment_distance, unit, vec3
from rayverb.geometry.record import HitRecord

# Maximum distance between the closest-approach point and the segment
SEGMENT_TOLERANCE = 1e-5


@ti.dataclass
class Segment:
    """A bounded segment between endpoints a and b.

    Attributes:
        a: First endpoint (vec3).
        b: Second endpoint (vec3).
    """

    a: vec3
    b: vec3


@ti.func
def segment_reflection_normal(seg: Segment, incoming: vec3) -> vec3:
    """Unit normal for reflecting ``incoming`` off the segment.

    The normal is perpendicular to the segment and lies in the plane of the
    segment and the incoming direction.
    """
    return unit(plane_normal(seg.b - seg.a, unit(incoming)))


@ti.func
def hit_segment(ray_origin: vec3, ray_direction: vec3, seg: Segment) -> HitRecord:
    """Test for ray-segment intersection.

    Rejects closest-approach points with a non-positive ray parameter. When
    the ray is parallel to the segment (the plane normal vanishes) the ray
    parameter is taken as zero if the origin lies on the segment's plane and
    the query misses otherwise; a zero parameter is never a forward hit, so a
    parallel ray never intersects.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction of the ray (need not be normalized).
        seg: The segment to test.

    Returns:
        A HitRecord; check the hit field.
    """
    seg_direction = seg.b - seg.a
    n = plane_normal(seg_direction, ray_direction)
    num = dot(seg.a - ray_origin, n)
    den = dot(ray_direction, n)

    did_hit = 0
    hit_distance = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    d = 0.0
    off_plane = 0
    if den == 0.0:
        if num != 0.0:
            off_plane = 1
    else:
        d = num / den

    if off_plane == 0:
        point = ray_origin + ray_direction * d
        travel = point - ray_origin
        if dot(ray_direction, travel) > 0.0:
            if point_segment_distance(point, seg.a, seg.b) <= SEGMENT_TOLERANCE:
                did_hit = 1
                hit_point = point
                hit_distance = ti.sqrt(dot(travel, travel))
                hit_normal = segment_reflection_normal(seg, ray_direction)

    return HitRecord(hit=did_hit, distance=hit_distance, point=hit_point, normal=hit_normal)


@ti.func
def make_segment(a: vec3, b: vec3) -> Segment:
    """Create a segment from two endpoints within a Taichi kernel."""
    return Segment(a=a, b=b)
