"""Core tracing and signal-processing module.

Components:
    vector: Point/vector algebra (Taichi functions plus NumPy mirrors)
    ray: Ray data structure, reflection offset and direction sampling
    tracer: Bounce- and distance-limited specular path tracing
    profiler: Monte Carlo room profiler producing impulse-response kernels
    convolution: FFT convolution, plans and streaming overlap-retain

Only the modules without Taichi fields are imported here. The tracer and
profiler allocate fields at import time, so import them directly after
``ti.init()``:

    from rayverb.core.profiler import RoomProfiler, profile_room
    from rayverb.core.tracer import trace_ray
"""

from .convolution import (
    ConvolutionPlan,
    StreamingConvolver,
    TransformContext,
    fft_convolve,
    next_power_of_two,
    rfft_convolve,
    rfft_convolve_streaming,
)
from .ray import (
    REFLECTION_OFFSET,
    Ray,
    make_ray,
    offset_ray,
    random_spherical_direction,
    ray_at,
)
from .vector import (
    cross,
    distance,
    dot,
    norm,
    norm_squared,
    plane_normal,
    point_line_projection,
    point_plane_distance,
    point_ray_distance,
    point_segment_distance,
    projection,
    reflect,
    unit,
    vec3,
)

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "offset_ray",
    "random_spherical_direction",
    "REFLECTION_OFFSET",
    "vec3",
    "dot",
    "cross",
    "norm",
    "norm_squared",
    "unit",
    "distance",
    "projection",
    "plane_normal",
    "reflect",
    "point_line_projection",
    "point_ray_distance",
    "point_segment_distance",
    "point_plane_distance",
    "ConvolutionPlan",
    "TransformContext",
    "StreamingConvolver",
    "next_power_of_two",
    "fft_convolve",
    "rfft_convolve",
    "rfft_convolve_streaming",
]
