"""Scene manager coordinating host shapes and Taichi scene storage.

The SceneManager keeps the validated host shapes (rayverb.scene.shapes) for
every wall and for the target, and mirrors them into the tagged primitive
fields of rayverb.scene.intersection that the tracer reads.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> scene.add_box(corner=(0, 0, 0), width=10, height=10, depth=10)
    [0, 1, 2, 3, 4, 5]
    >>> scene.set_target_sphere(center=(5, 5, 9.5), radius=5.0)
"""

from dataclasses import dataclass, field
from typing import Any

from rayverb.scene.intersection import (
    MAX_PRIMITIVES,
    PrimitiveKind,
    add_primitive,
    clear_scene,
    clear_target,
    get_primitive_count,
)
from rayverb.scene.intersection import set_target as _store_target
from rayverb.scene.shapes import (
    Quad,
    Segment,
    Shape,
    Sphere,
    Triangle,
    make_box,
    shape_from_dict,
)


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        walls: List of wall shape configurations.
        target: The target shape configuration, or None.
    """

    walls: list[dict[str, Any]] = field(default_factory=list)
    target: dict[str, Any] | None = None


class SceneManager:
    """High-level API for building an acoustic scene.

    Walls are any mix of segments, triangles, quads and spheres. The target
    (the microphone) is a single shape of any kind that rays are tested
    against independently of the walls.

    Attributes:
        walls: Host shapes for every wall, in slot order.
        target: The target shape, or None.

    Example:
        >>> scene = SceneManager()
        >>> scene.add_quad((0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0))
        0
        >>> scene.set_target(Sphere(center=(0.5, 0.5, 2.0), radius=0.25))
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.walls: list[Shape] = []
        self.target: Shape | None = None
        self._clear_all()

    def _clear_all(self) -> None:
        clear_scene()
        self.walls.clear()
        self.target = None

    def clear(self) -> None:
        """Remove all walls and the target, including the Taichi fields."""
        self._clear_all()

    # =========================================================================
    # Walls
    # =========================================================================

    def add_shape(self, shape: Shape) -> int:
        """Add a validated shape as a wall.

        Returns:
            The slot index of the wall.

        Raises:
            RuntimeError: If the maximum number of primitives is exceeded.
        """
        index = add_primitive(shape.kind, shape.points, shape.radius)
        self.walls.append(shape)
        return index

    def add_segment(self, a, b) -> int:
        """Add a segment wall from a to b.

        Raises:
            InvalidGeometryError: If the endpoints coincide.
        """
        return self.add_shape(Segment(a, b))

    def add_triangle(self, a, b, c) -> int:
        """Add a triangle wall.

        Raises:
            InvalidGeometryError: If the triangle has zero area.
        """
        return self.add_shape(Triangle(a, b, c))

    def add_quad(self, a, b, c, d) -> int:
        """Add a planar quad wall with clockwise corners.

        Raises:
            InvalidGeometryError: If the quad is degenerate or not planar.
        """
        return self.add_shape(Quad(a, b, c, d))

    def add_sphere(self, center, radius: float) -> int:
        """Add a sphere wall.

        Raises:
            InvalidGeometryError: If the radius is not positive.
        """
        return self.add_shape(Sphere(center, radius))

    def add_box(
        self,
        corner,
        width: float,
        height: float,
        depth: float,
        include_front: bool = True,
    ) -> list[int]:
        """Add the faces of an axis-aligned box as quad walls.

        Args:
            corner: The minimum corner.
            width: Extent along x.
            height: Extent along y.
            depth: Extent along z.
            include_front: Whether to close the box with the front face.

        Returns:
            Slot indices of the added faces.
        """
        faces = make_box(corner, width, height, depth, include_front)
        if get_primitive_count() + len(faces) > MAX_PRIMITIVES:
            raise RuntimeError(f"Maximum number of primitives ({MAX_PRIMITIVES}) exceeded")
        return [self.add_shape(face) for face in faces]

    # =========================================================================
    # Target
    # =========================================================================

    def set_target(self, shape: Shape) -> None:
        """Use ``shape`` as the target, replacing any previous one."""
        _store_target(shape.kind, shape.points, shape.radius)
        self.target = shape

    def set_target_sphere(self, center, radius: float) -> None:
        """Use a sphere as the target."""
        self.set_target(Sphere(center, radius))

    def set_target_quad(self, a, b, c, d) -> None:
        """Use a planar quad as the target."""
        self.set_target(Quad(a, b, c, d))

    def clear_target(self) -> None:
        """Remove the target."""
        clear_target()
        self.target = None

    # =========================================================================
    # Scene Statistics
    # =========================================================================

    def get_primitive_count(self) -> int:
        """Get the number of walls in the scene."""
        return get_primitive_count()

    def get_count(self, kind: PrimitiveKind) -> int:
        """Get the number of walls of one kind."""
        return sum(1 for wall in self.walls if wall.kind == kind)

    def has_target(self) -> bool:
        return self.target is not None

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        return SceneConfig(
            walls=[wall.to_dict() for wall in self.walls],
            target=None if self.target is None else self.target.to_dict(),
        )

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration.

        Raises:
            ValueError: If the configuration contains an unknown shape kind.
            InvalidGeometryError: If a shape is degenerate.
        """
        self.clear()
        for wall_config in config.walls:
            self.add_shape(shape_from_dict(wall_config))
        if config.target is not None:
            self.set_target(shape_from_dict(config.target))

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {"walls": config.walls, "target": config.target}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary.

        Args:
            data: Dictionary with 'walls' and 'target' keys.
        """
        self.from_config(SceneConfig(walls=data.get("walls", []), target=data.get("target")))

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_primitives() -> int:
        """Get the maximum number of walls supported."""
        return MAX_PRIMITIVES
