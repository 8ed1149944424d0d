"""Axis-aligned box assembly from quads.

A room is modeled as a box spanning ``corner`` to
``corner + (width, height, depth)``. Its faces are returned as clockwise
corner quadruples in the order back, right, left, top, bottom, front. The
front face (the one at ``corner.z + depth``) is optional, so an open box can
be produced for scenes where sound should escape on one side.

This module is pure Python; rayverb.scene.shapes wraps the faces into Quad
shapes that can be added to a scene.
"""

from __future__ import annotations

from rayverb.errors import InvalidGeometryError

Point = tuple[float, float, float]

BOX_FACE_NAMES = ("back", "right", "left", "top", "bottom", "front")


def _offset(p: Point, dx: float = 0.0, dy: float = 0.0, dz: float = 0.0) -> Point:
    return (p[0] + dx, p[1] + dy, p[2] + dz)


def box_faces(
    corner: Point,
    width: float,
    height: float,
    depth: float,
    include_front: bool = True,
) -> list[tuple[Point, Point, Point, Point]]:
    """Compute the faces of an axis-aligned box.

    Args:
        corner: The minimum corner of the box.
        width: Extent along x (must be positive).
        height: Extent along y (must be positive).
        depth: Extent along z (must be positive).
        include_front: Whether to include the sixth (front) face.

    Returns:
        List of 5 or 6 corner quadruples (a, b, c, d), ordered as
        BOX_FACE_NAMES.

    Raises:
        InvalidGeometryError: If any dimension is not positive.
    """
    for name, value in (("width", width), ("height", height), ("depth", depth)):
        if not value > 0.0:
            raise InvalidGeometryError(f"Box {name} must be positive, got {value}")

    c = (float(corner[0]), float(corner[1]), float(corner[2]))
    w, h, d = float(width), float(height), float(depth)

    faces = [
        # back
        (c, _offset(c, w), _offset(c, w, h), _offset(c, 0.0, h)),
        # right
        (_offset(c, w), _offset(c, w, h), _offset(c, w, h, d), _offset(c, w, 0.0, d)),
        # left
        (c, _offset(c, 0.0, h), _offset(c, 0.0, h, d), _offset(c, 0.0, 0.0, d)),
        # top
        (c, _offset(c, 0.0, 0.0, d), _offset(c, w, 0.0, d), _offset(c, w)),
        # bottom
        (_offset(c, 0.0, h), _offset(c, 0.0, h, d), _offset(c, w, h, d), _offset(c, w, h)),
    ]
    if include_front:
        faces.append(
            (_offset(c, 0.0, 0.0, d), _offset(c, w, 0.0, d), _offset(c, w, h, d), _offset(c, 0.0, h, d))
        )
    return faces
