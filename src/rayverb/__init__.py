"""Ray-traced room acoustics and convolution reverb built on Taichi.

This package estimates a room's impulse response by Monte Carlo ray tracing
and applies it to audio with FFT convolution:
- Bounce- and distance-limited specular ray tracing
- Segment, triangle, quad, sphere and box primitives
- Time-binned, peak-normalized impulse-response kernels
- One-shot and streaming (overlap-retain) FFT convolution

Taichi must be initialized with double precision before importing any module
that allocates fields (``rayverb.scene``, ``rayverb.core.tracer``,
``rayverb.core.profiler``)::

    import taichi as ti
    ti.init(arch=ti.cpu, default_fp=ti.f64)

Subpackages:
    core: Vector algebra, rays, tracer, room profiler and convolution engine
    geometry: Primitive structs and their intersection routines
    scene: Primitive storage, host-side shapes and room factories
    audio: WAV codec boundary, kernel persistence and the reverb driver
"""

__version__ = "0.1.0"
