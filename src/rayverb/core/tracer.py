"""Bounce- and distance-limited specular path tracing.

A path starts at a source point and follows specular reflections off the scene
walls. At every step the target is tested on its own. When it is reached no
later than the nearest wall, a hit record (total distance, bounce count) is
appended to a preallocated buffer. A path ends when it escapes the room or
exceeds its bounce or distance budget.

The recorded distance is the distance travelled before the step plus the
nearest wall distance plus the target distance. Both terms of the current
step are added even though the target lies before the wall, so every hit
after the first segment is recorded longer than the acoustic path. Kernels
depend on this accumulation and it is kept as is.

Hit storage uses Taichi fields with a fixed capacity (MAX_HITS). Hits are
appended with an atomic counter from the parallel trial loop.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.scene.manager import SceneManager
    >>> from rayverb.core.tracer import trace_ray
    >>> scene = SceneManager()
    >>> scene.add_box((0, 0, 0), 10, 10, 10)
    [0, 1, 2, 3, 4, 5]
    >>> scene.set_target_sphere((5, 5, 9.5), 0.25)
    >>> trace_ray((5, 5, 1), (0, 0, 1), max_bounces=0, max_distance=100.0)
    [TargetHit(distance=..., bounce=0)]
"""

from collections.abc import Sequence
from typing import NamedTuple

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from rayverb.core.ray import offset_ray, random_spherical_direction
from rayverb.core.vector import reflect, unit, vec3
from rayverb.scene.intersection import intersect_target, intersect_walls

# Maximum number of hit records held between reads
MAX_HITS = 1 << 20

hit_distances = ti.field(dtype=ti.f64, shape=MAX_HITS)
hit_bounces = ti.field(dtype=ti.i32, shape=MAX_HITS)
hit_count = ti.field(dtype=ti.i32, shape=())
# Set when an append found the buffer full
hit_overflow = ti.field(dtype=ti.i32, shape=())


class TargetHit(NamedTuple):
    """One accepted target intersection.

    Attributes:
        distance: Total recorded path distance.
        bounce: Number of wall reflections before the hit.
    """

    distance: float
    bounce: int


def clear_hits() -> None:
    """Empty the hit buffer."""
    hit_count[None] = 0
    hit_overflow[None] = 0


def get_hit_count() -> int:
    """Get the number of stored hit records."""
    return min(int(hit_count[None]), MAX_HITS)


def read_hits() -> tuple[npt.NDArray[np.float64], npt.NDArray[np.int32]]:
    """Copy the stored hit records to NumPy.

    Returns:
        Tuple of (distances, bounces) arrays of equal length.

    Raises:
        RuntimeError: If hits were dropped because the buffer was full.
    """
    if int(hit_overflow[None]) != 0:
        raise RuntimeError(f"Hit buffer overflow: more than {MAX_HITS} hits in one batch")
    n = get_hit_count()
    return hit_distances.to_numpy()[:n], hit_bounces.to_numpy()[:n]


@ti.func
def record_hit(total_distance: ti.f64, bounce: ti.i32):
    """Append a hit record, flagging overflow instead of writing past the end."""
    idx = ti.atomic_add(hit_count[None], 1)
    if idx < MAX_HITS:
        hit_distances[idx] = total_distance
        hit_bounces[idx] = bounce
    else:
        hit_overflow[None] = 1


@ti.func
def trace_path(
    origin: vec3,
    direction: vec3,
    max_bounces: ti.i32,
    max_distance: ti.f64,
    start_bounce: ti.i32,
    start_distance: ti.f64,
):
    """Follow one specular path and record every accepted target hit.

    Each step:
    1. Stops if the travelled distance exceeds max_distance or the bounce
       count exceeds max_bounces.
    2. Finds the nearest wall hit (beyond WALL_MIN_DISTANCE).
    3. Tests the target; accepts it if it is no farther than the wall hit
       (any distance if no wall was hit).
    4. Reflects off the wall and continues, or stops if the ray escaped.

    Args:
        origin: The starting point.
        direction: The initial direction (non-zero).
        max_bounces: Maximum number of reflections.
        max_distance: Maximum travelled distance before a step.
        start_bounce: Bounce count of the initial ray.
        start_distance: Distance already travelled by the initial ray.
    """
    ray_origin = origin
    ray_direction = direction
    travelled = start_distance
    bounce = start_bounce

    # Taichi doesn't support break in ti.func loops
    active = 1

    # At most one step per bounce count in [start_bounce, max_bounces]
    for _ in range(max_bounces + 1):
        if active == 1:
            if travelled > max_distance or bounce > max_bounces:
                active = 0
            else:
                wall = intersect_walls(ray_origin, ray_direction)
                target = intersect_target(ray_origin, ray_direction)

                wall_bound = tm.inf
                wall_distance = 0.0
                if wall.hit == 1:
                    wall_bound = wall.distance
                    wall_distance = wall.distance

                if target.hit == 1 and target.distance <= wall_bound:
                    record_hit(travelled + wall_distance + target.distance, bounce)

                if wall.hit == 1:
                    next_ray = offset_ray(wall.point, reflect(unit(ray_direction), wall.normal))
                    ray_origin = next_ray.origin
                    ray_direction = next_ray.direction
                    travelled += wall.distance
                    bounce += 1
                else:
                    # Escaped the room
                    active = 0


# =============================================================================
# Tracing Kernels
# =============================================================================


@ti.kernel
def _trace_single(
    ox: ti.f64,
    oy: ti.f64,
    oz: ti.f64,
    dx: ti.f64,
    dy: ti.f64,
    dz: ti.f64,
    max_bounces: ti.i32,
    max_distance: ti.f64,
    start_bounce: ti.i32,
    start_distance: ti.f64,
):
    # Keep the bounce loop out of the outermost (parallelized) scope
    for _ in range(1):
        trace_path(
            vec3(ox, oy, oz),
            vec3(dx, dy, dz),
            max_bounces,
            max_distance,
            start_bounce,
            start_distance,
        )


@ti.kernel
def _trace_batch(
    num_paths: ti.i32,
    sx: ti.f64,
    sy: ti.f64,
    sz: ti.f64,
    max_bounces: ti.i32,
    max_distance: ti.f64,
):
    """Trace num_paths paths from the source in random directions."""
    for _ in range(num_paths):
        direction = random_spherical_direction()
        trace_path(vec3(sx, sy, sz), direction, max_bounces, max_distance, 0, 0.0)


# =============================================================================
# Public Tracing API
# =============================================================================


def max_paths_per_batch(max_bounces: int) -> int:
    """Largest number of paths whose hits are guaranteed to fit MAX_HITS.

    A path records at most one hit per bounce count, so max_bounces + 1.
    """
    return max(1, MAX_HITS // (max_bounces + 1))


def trace_ray(
    origin: Sequence[float],
    direction: Sequence[float],
    max_bounces: int,
    max_distance: float,
    bounce: int = 0,
    distance: float = 0.0,
) -> list[TargetHit]:
    """Trace a single path through the current scene.

    This is a Python-callable function for diagnostics and testing. For
    profiling use trace_batch(), which traces paths in parallel.

    Args:
        origin: The starting point.
        direction: The initial direction (non-zero).
        max_bounces: Maximum number of reflections (>= 0).
        max_distance: Maximum travelled distance.
        bounce: Bounce count of the initial ray.
        distance: Distance already travelled by the initial ray.

    Returns:
        The accepted target hits in path order.

    Raises:
        ValueError: If max_bounces or bounce is negative, or the direction
            is zero.
    """
    if max_bounces < 0 or bounce < 0:
        raise ValueError(f"Bounce counts must be non-negative, got {max_bounces} and {bounce}")
    if not any(float(c) != 0.0 for c in direction):
        raise ValueError("Ray direction must be non-zero")

    clear_hits()
    _trace_single(
        float(origin[0]),
        float(origin[1]),
        float(origin[2]),
        float(direction[0]),
        float(direction[1]),
        float(direction[2]),
        int(max_bounces),
        float(max_distance),
        int(bounce),
        float(distance),
    )
    distances, bounces = read_hits()
    return [TargetHit(float(d), int(b)) for d, b in zip(distances, bounces)]


def trace_batch(
    source: Sequence[float],
    num_paths: int,
    max_bounces: int,
    max_distance: float,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.int32]]:
    """Trace num_paths random paths from source in parallel.

    Args:
        source: The emission point.
        num_paths: Number of paths (at most max_paths_per_batch(max_bounces)).
        max_bounces: Maximum number of reflections per path.
        max_distance: Maximum travelled distance per path.

    Returns:
        Tuple of (distances, bounces) arrays for the batch.

    Raises:
        ValueError: If max_bounces is negative.
        RuntimeError: If the batch could overflow the hit buffer.
    """
    if max_bounces < 0:
        raise ValueError(f"max_bounces must be non-negative, got {max_bounces}")
    if num_paths > max_paths_per_batch(max_bounces):
        raise RuntimeError(
            f"Batch of {num_paths} paths may exceed the hit buffer ({MAX_HITS} hits)"
        )

    clear_hits()
    if num_paths > 0:
        _trace_batch(
            int(num_paths),
            float(source[0]),
            float(source[1]),
            float(source[2]),
            int(max_bounces),
            float(max_distance),
        )
    return read_hits()
