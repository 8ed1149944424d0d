"""Geometry module for primitive structs and intersection routines.

Components:
    record: HitRecord shared by every intersection routine
    segment: Segment primitive with skew-line closest approach
    triangle: Triangle primitive with barycentric bounds
    quad: Planar quad split into two triangles
    sphere: Sphere primitive (typically a microphone target)
    box: Axis-aligned box assembly from quads (pure Python)

All intersection routines are Taichi functions (@ti.func) and follow the
pattern:
    rec = hit_shape(ray_origin, ray_direction, shape)

where rec.distance is the Euclidean distance from the ray origin and
rec.normal is the unit normal used for specular reflection.
"""

from .box import BOX_FACE_NAMES, box_faces
from .quad import Quad, hit_quad, make_quad, quad_area, quad_normal
from .record import HitRecord, make_miss_record
from .segment import SEGMENT_TOLERANCE, Segment, hit_segment, make_segment
from .sphere import Sphere, hit_sphere, make_sphere
from .triangle import Triangle, barycentric, hit_triangle, make_triangle, triangle_normal

__all__ = [
    "HitRecord",
    "make_miss_record",
    "Segment",
    "hit_segment",
    "make_segment",
    "SEGMENT_TOLERANCE",
    "Triangle",
    "hit_triangle",
    "make_triangle",
    "triangle_normal",
    "barycentric",
    "Quad",
    "hit_quad",
    "make_quad",
    "quad_area",
    "quad_normal",
    "Sphere",
    "hit_sphere",
    "make_sphere",
    "box_faces",
    "BOX_FACE_NAMES",
]
