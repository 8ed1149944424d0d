"""Unit tests for the specular path tracer.

Tests cover:
- Direct hits and the recorded distance accumulation
- Bounce and distance limits
- Rays escaping an open scene
- Parallel batch tracing and the hit buffer guard
"""

import numpy as np
import pytest


@pytest.fixture
def box_room():
    """A closed 10 m box with a small sphere target near the far wall."""
    from rayverb.scene.manager import SceneManager

    scene = SceneManager()
    scene.add_box((0, 0, 0), 10, 10, 10)
    scene.set_target_sphere((5, 5, 9.5), 0.25)
    yield scene
    scene.clear()


class TestTraceRay:
    """Tests for single path tracing."""

    def test_direct_hit_only(self, box_room):
        """Test a ray at the target with no bounces records one hit."""
        from rayverb.core.tracer import trace_ray

        hits = trace_ray((5, 5, 1), (0, 0, 1), max_bounces=0, max_distance=100.0)
        assert len(hits) == 1
        # Wall at 9 plus target at 8.25, both counted
        assert abs(hits[0].distance - 17.25) < 1e-9
        assert hits[0].bounce == 0

    def test_ray_away_from_target(self, box_room):
        """Test a ray pointing away records nothing without bounces."""
        from rayverb.core.tracer import trace_ray

        assert trace_ray((5, 5, 1), (0, 0, -1), max_bounces=0, max_distance=100.0) == []

    def test_first_bounce_hit(self, box_room):
        """Test the reflection off the far wall reaches the target again."""
        from rayverb.core.tracer import trace_ray

        hits = trace_ray((5, 5, 1), (0, 0, 1), max_bounces=1, max_distance=100.0)
        assert [h.bounce for h in hits] == [0, 1]
        # 9 travelled, then 10 to the back wall and 0.25 to the sphere
        assert abs(hits[1].distance - 19.25) < 1e-4

    def test_bounce_after_reflection_off_back_wall(self, box_room):
        """Test a ray fired away first reaches the target after one bounce."""
        from rayverb.core.tracer import trace_ray

        hits = trace_ray((5, 5, 1), (0, 0, -1), max_bounces=1, max_distance=100.0)
        assert len(hits) == 1
        assert hits[0].bounce == 1
        # 1 travelled, 10 to the far wall, 9.25 to the sphere
        assert abs(hits[0].distance - 20.25) < 1e-4

    def test_max_distance_stops_later_steps(self, box_room):
        """Test steps starting beyond max_distance are not traced."""
        from rayverb.core.tracer import trace_ray

        hits = trace_ray((5, 5, 1), (0, 0, 1), max_bounces=5, max_distance=5.0)
        assert len(hits) == 1
        assert hits[0].bounce == 0

    def test_initial_bounce_and_distance(self, box_room):
        """Test a ray can resume from a given bounce and distance."""
        from rayverb.core.tracer import trace_ray

        hits = trace_ray((5, 5, 1), (0, 0, 1), max_bounces=1, max_distance=100.0, bounce=1, distance=2.0)
        assert len(hits) == 1
        assert hits[0].bounce == 1
        assert abs(hits[0].distance - 19.25) < 1e-9

    def test_escaped_ray_records_target_distance(self):
        """Test with no walls only the target distance is recorded."""
        from rayverb.core.tracer import trace_ray
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.set_target_sphere((0, 0, 5), 1.0)
        hits = trace_ray((0, 0, 0), (0, 0, 1), max_bounces=3, max_distance=100.0)
        assert len(hits) == 1
        assert abs(hits[0].distance - 4.0) < 1e-9

    def test_no_target_no_hits(self):
        """Test tracing without a target never records."""
        from rayverb.core.tracer import trace_ray
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_box((0, 0, 0), 10, 10, 10)
        assert trace_ray((5, 5, 5), (1, 2, 3), max_bounces=10, max_distance=1000.0) == []

    def test_rays_at_seams_stay_inside(self):
        """Test rays aimed at edges, corners and face diagonals hit a wall.

        The target encloses the room, so it is only recorded when a ray
        slips between the walls and escapes.
        """
        from rayverb.core.tracer import trace_ray
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_box((0, 0, 0), 10, 10, 10)
        scene.set_target_sphere((5, 5, 5), 1000.0)

        center = np.array([5.0, 5.0, 5.0])
        aims = [
            (10.0, 10.0, 10.0),
            (0.0, 10.0, 5.0),
            (10.0, 3.7, 3.7),
            (10.0, 3.7, 6.3),
            (1.3, 1.3, 0.0),
            (1.3, 8.7, 0.0),
            (0.1, 0.0, 9.9),
            (7.9, 2.1, 10.0),
        ]
        for aim in aims:
            direction = tuple(np.array(aim) - center)
            assert trace_ray(tuple(center), direction, max_bounces=0, max_distance=100.0) == []

    def test_invalid_arguments(self, box_room):
        """Test negative bounces and zero directions raise ValueError."""
        from rayverb.core.tracer import trace_ray

        with pytest.raises(ValueError):
            trace_ray((5, 5, 1), (0, 0, 1), max_bounces=-1, max_distance=10.0)
        with pytest.raises(ValueError):
            trace_ray((5, 5, 1), (0, 0, 0), max_bounces=1, max_distance=10.0)


class TestHitBuffer:
    """Tests for hit storage and batch tracing."""

    def test_clear_hits(self, box_room):
        """Test clearing the buffer after a trace."""
        from rayverb.core.tracer import clear_hits, get_hit_count, trace_ray

        trace_ray((5, 5, 1), (0, 0, 1), max_bounces=1, max_distance=100.0)
        assert get_hit_count() == 2
        clear_hits()
        assert get_hit_count() == 0

    def test_batch_respects_bounce_limit(self):
        """Test batch hits have bounded bounces and positive distances."""
        from rayverb.core.tracer import trace_batch
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_box((0, 0, 0), 10, 10, 10)
        scene.set_target_sphere((5, 5, 7), 2.0)
        distances, bounces = trace_batch((5, 5, 1), 2000, max_bounces=3, max_distance=1000.0)

        assert len(distances) == len(bounces)
        assert len(distances) > 0
        assert bounces.min() >= 0
        assert bounces.max() <= 3
        # No path can reach the sphere in less than the direct gap of 4
        assert distances.min() >= 4.0 - 1e-9

    def test_empty_batch(self, box_room):
        """Test a batch of zero paths returns empty arrays."""
        from rayverb.core.tracer import trace_batch

        distances, bounces = trace_batch((5, 5, 1), 0, max_bounces=3, max_distance=100.0)
        assert len(distances) == 0
        assert len(bounces) == 0

    def test_batch_too_large(self, box_room):
        """Test batches that could overflow the buffer are rejected."""
        from rayverb.core.tracer import max_paths_per_batch, trace_batch

        with pytest.raises(RuntimeError):
            trace_batch((5, 5, 1), max_paths_per_batch(10) + 1, max_bounces=10, max_distance=100.0)

    def test_max_paths_per_batch(self):
        """Test the batch limit leaves room for one hit per bounce count."""
        from rayverb.core.tracer import MAX_HITS, max_paths_per_batch

        assert max_paths_per_batch(0) == MAX_HITS
        assert max_paths_per_batch(3) == MAX_HITS // 4
