"""Scene module for primitive storage, host shapes and room setup.

Components:
    intersection: Tagged primitive fields, wall search and target test
    shapes: Validated host shapes with single-ray queries
    manager: SceneManager coordinating host shapes and Taichi storage
    room: Shoebox room factory driven by RoomParams

Scene data is organized for parallel tracing:
    - Structure-of-Arrays layout for every primitive kind
    - One tagged slot for the target (microphone)
    - Fixed capacity (MAX_PRIMITIVES), cleared and refilled from Python
"""

from .intersection import (
    MAX_PRIMITIVES,
    WALL_MIN_DISTANCE,
    PrimitiveKind,
    ProbeResult,
    add_primitive,
    clear_scene,
    clear_target,
    get_primitive_count,
    has_target,
    hit_primitive,
    intersect_target,
    intersect_walls,
    probe_primitive,
    set_target,
)
from .manager import SceneConfig, SceneManager
from .room import RoomParams, create_room_scene
from .shapes import Quad, Ray, Segment, Shape, Sphere, Triangle, make_box, shape_from_dict

__all__ = [
    "MAX_PRIMITIVES",
    "WALL_MIN_DISTANCE",
    "PrimitiveKind",
    "ProbeResult",
    "add_primitive",
    "clear_scene",
    "clear_target",
    "get_primitive_count",
    "has_target",
    "hit_primitive",
    "intersect_target",
    "intersect_walls",
    "probe_primitive",
    "set_target",
    "SceneConfig",
    "SceneManager",
    "RoomParams",
    "create_room_scene",
    "Ray",
    "Segment",
    "Triangle",
    "Quad",
    "Sphere",
    "Shape",
    "make_box",
    "shape_from_dict",
]
