"""Point and vector algebra for double-precision ray tracing.

Points and vectors share the ``vec3`` type (three f64 components). The Taichi
functions here are used inside kernels; the ``np_*`` mirrors implement the same
operations on NumPy arrays for host-side validation and tests.

All operations are total except :func:`unit`, which divides by the vector
length and is undefined for a zero vector. Callers only ask for the unit of a
direction that is non-degenerate by construction.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.core.vector import vec3, projection
    >>> # Use projection(u, v) within a Taichi kernel
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

# Double precision keeps intersection tolerances (1e-5 .. 1e-7) meaningful
vec3 = ti.types.vector(3, ti.f64)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f64:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def norm_squared(v: vec3) -> ti.f64:
    """Compute the squared Euclidean length of v."""
    return tm.dot(v, v)


@ti.func
def norm(v: vec3) -> ti.f64:
    """Compute the Euclidean length of v."""
    return ti.sqrt(tm.dot(v, v))


@ti.func
def unit(v: vec3) -> vec3:
    """Scale v to unit length. Undefined for the zero vector."""
    return v / norm(v)


@ti.func
def distance(p: vec3, q: vec3) -> ti.f64:
    """Distance between two points, |p - q|."""
    return norm(p - q)


@ti.func
def projection(u: vec3, v: vec3) -> vec3:
    """Project u onto v: v * (u . v / |v|^2)."""
    return v * (tm.dot(u, v) / tm.dot(v, v))


@ti.func
def plane_normal(u: vec3, v: vec3) -> vec3:
    """Double cross product u x (u x v).

    The result is perpendicular to u and lies in the plane spanned by u and
    v. It is the normal of the plane that contains the line along u and
    faces the direction v, which is what skew-line closest-approach needs.
    """
    return tm.cross(u, tm.cross(u, v))


@ti.func
def reflect(v: vec3, n: vec3) -> vec3:
    """Specular reflection of v about the surface normal n."""
    return v - 2.0 * projection(v, n)


# =============================================================================
# Point Distance Helpers
# =============================================================================


@ti.func
def point_line_projection(p: vec3, a: vec3, direction: vec3) -> vec3:
    """Foot of the perpendicular from p onto the line a + s * direction."""
    return a + projection(p - a, direction)


@ti.func
def point_ray_distance(p: vec3, a: vec3, direction: vec3) -> ti.f64:
    """Perpendicular distance from p to the infinite line through a."""
    return distance(p, point_line_projection(p, a, direction))


@ti.func
def point_segment_distance(p: vec3, a: vec3, b: vec3) -> ti.f64:
    """Distance from p to the closed segment [a, b].

    Points beyond either endpoint measure to that endpoint.
    """
    seg = b - a
    result = 0.0
    if tm.dot(p - a, seg) > 0.0:
        if tm.dot(p - b, seg) > 0.0:
            result = distance(p, b)
        else:
            result = point_ray_distance(p, a, seg)
    else:
        result = distance(p, a)
    return result


@ti.func
def point_plane_distance(p: vec3, plane_point: vec3, normal: vec3) -> ti.f64:
    """Unsigned distance from p to the plane through plane_point."""
    return norm(projection(p - plane_point, normal))


# =============================================================================
# NumPy Mirrors (host side)
# =============================================================================


def as_point(value) -> npt.NDArray[np.float64]:
    """Convert a 3-sequence into a float64 NumPy vector."""
    arr = np.asarray(value, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-component point or vector, got shape {arr.shape}")
    return arr


def np_projection(u: npt.NDArray[np.float64], v: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Host version of :func:`projection`."""
    return v * (np.dot(u, v) / np.dot(v, v))


def np_plane_normal(u: npt.NDArray[np.float64], v: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Host version of :func:`plane_normal`."""
    return np.cross(u, np.cross(u, v))


def np_unit(v: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Host version of :func:`unit`."""
    return v / np.linalg.norm(v)


def np_reflect(v: npt.NDArray[np.float64], n: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    """Host version of :func:`reflect`."""
    return v - 2.0 * np_projection(v, n)


def np_barycentric(
    p: npt.NDArray[np.float64],
    a: npt.NDArray[np.float64],
    b: npt.NDArray[np.float64],
    c: npt.NDArray[np.float64],
) -> tuple[float, float, float]:
    """Barycentric weights of p with respect to triangle (a, b, c).

    Returns:
        Tuple (alpha, beta, gamma) weighting a, b and c respectively.
    """
    u = b - a
    v = c - a
    w = p - a
    n = np.cross(u, v)
    n2 = float(np.dot(n, n))
    gamma = float(np.dot(np.cross(u, w), n)) / n2
    beta = float(np.dot(np.cross(w, v), n)) / n2
    return 1.0 - gamma - beta, beta, gamma
