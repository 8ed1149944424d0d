"""Shoebox room scene configuration.

This module builds the standard profiling scene: a closed box room with a
point speaker inside and a rectangular microphone facing along z.

The coordinate system places the room's minimum corner at the origin with:
- X-axis: room width (0 to room_width)
- Y-axis: room height (0 to room_height)
- Z-axis: room depth (0 to room_depth)

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64)
    >>> from rayverb.scene.room import RoomParams, create_room_scene
    >>>
    >>> scene, speaker = create_room_scene(RoomParams(room_depth=50.0, microphone_z=45.0))
    >>> # Now profile from the speaker position
"""

from dataclasses import dataclass

from rayverb.scene.manager import SceneManager

Point = tuple[float, float, float]


@dataclass
class RoomParams:
    """Parameters for configuring a shoebox room.

    All lengths are in meters. Defaults describe a 100 m cube with the speaker
    near one wall and a 5 m square microphone near the opposite one.

    Attributes:
        room_width: Extent of the room along x.
        room_height: Extent of the room along y.
        room_depth: Extent of the room along z.
        speaker_x: Speaker position along x.
        speaker_y: Speaker position along y.
        speaker_z: Speaker position along z.
        microphone_width: Microphone extent along x.
        microphone_height: Microphone extent along y.
        microphone_x: Microphone center along x.
        microphone_y: Microphone center along y.
        microphone_z: Microphone plane position along z.

    Example:
        >>> params = RoomParams()
        >>> params.speaker
        (50.0, 5.0, 5.0)
    """

    room_width: float = 100.0
    room_height: float = 100.0
    room_depth: float = 100.0
    speaker_x: float = 50.0
    speaker_y: float = 5.0
    speaker_z: float = 5.0
    microphone_width: float = 5.0
    microphone_height: float = 5.0
    microphone_x: float = 50.0
    microphone_y: float = 5.0
    microphone_z: float = 95.0

    @property
    def speaker(self) -> Point:
        return (float(self.speaker_x), float(self.speaker_y), float(self.speaker_z))

    def microphone_corners(self) -> tuple[Point, Point, Point, Point]:
        """Clockwise corners of the microphone quad in the plane z = microphone_z."""
        half_w = self.microphone_width / 2.0
        half_h = self.microphone_height / 2.0
        mx, my, mz = self.microphone_x, self.microphone_y, self.microphone_z
        return (
            (mx - half_w, my + half_h, mz),
            (mx + half_w, my + half_h, mz),
            (mx + half_w, my - half_h, mz),
            (mx - half_w, my - half_h, mz),
        )


def create_room_scene(params: RoomParams | None = None) -> tuple[SceneManager, Point]:
    """Create a closed shoebox room with a quad microphone target.

    Args:
        params: Optional RoomParams. If None, uses default RoomParams().

    Returns:
        A tuple of (SceneManager, speaker) where the scene holds the six room
        walls and the microphone target, and speaker is the source point.

    Raises:
        InvalidGeometryError: If a room or microphone dimension is not
            positive.
    """
    if params is None:
        params = RoomParams()

    scene = SceneManager()
    scene.add_box(
        corner=(0.0, 0.0, 0.0),
        width=params.room_width,
        height=params.room_height,
        depth=params.room_depth,
    )
    scene.set_target_quad(*params.microphone_corners())
    return scene, params.speaker
