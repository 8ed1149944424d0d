"""Unit tests for the room profiler.

Tests cover:
- Hit binning (index rounding, attenuation, accumulation)
- Kernel merging and peak normalization
- Settings validation
- Progressive profiling, callbacks and reset
- Unreachable targets
- End-to-end kernels for a small closed room
"""

import logging

import numpy as np
import pytest


@pytest.fixture
def small_room():
    """A 10 m room with a 4 m microphone near the far wall."""
    from rayverb.scene.room import RoomParams

    return RoomParams(
        room_width=10.0,
        room_height=10.0,
        room_depth=10.0,
        speaker_x=5.0,
        speaker_y=5.0,
        speaker_z=1.0,
        microphone_width=4.0,
        microphone_height=4.0,
        microphone_x=5.0,
        microphone_y=5.0,
        microphone_z=9.0,
    )


class TestBinning:
    """Tests for bin_hits, merge_kernels and normalize_kernel."""

    def test_index_and_attenuation(self):
        """Test arrival index and amplitude for two hits."""
        from rayverb.core.profiler import bin_hits

        kernel = bin_hits([343.0, 686.0], [0, 1], 343.0, 0.5, 1.0, 10.0)
        assert len(kernel) == 21
        assert kernel[10] == pytest.approx(1.0 / 343.0)
        assert kernel[20] == pytest.approx(0.5 / 686.0)
        assert np.count_nonzero(kernel) == 2

    def test_rounds_half_up(self):
        """Test fractional sample positions round half up."""
        from rayverb.core.profiler import bin_hits

        kernel = bin_hits([2.5, 2.4], [0, 0], 1.0, 0.0, 1.0, 1.0)
        assert len(kernel) == 4
        assert kernel[3] == pytest.approx(0.4)
        assert kernel[2] == pytest.approx(1.0 / 2.4)

    def test_same_index_accumulates(self):
        """Test hits landing on one sample are summed."""
        from rayverb.core.profiler import bin_hits

        kernel = bin_hits([1.0, 1.0], [0, 0], 1.0, 0.05, 1.0, 1.0)
        assert kernel[1] == pytest.approx(2.0)

    def test_no_hits(self):
        """Test no hits produce an empty kernel."""
        from rayverb.core.profiler import bin_hits

        assert len(bin_hits([], [], 343.0, 0.05, 1.0, 44100.0)) == 0

    def test_merge_pads_shorter(self):
        """Test merging kernels of different lengths."""
        from rayverb.core.profiler import merge_kernels

        merged = merge_kernels(np.array([1.0, 2.0]), np.array([1.0, 1.0, 1.0]))
        np.testing.assert_allclose(merged, [2.0, 3.0, 1.0])

    def test_normalize(self):
        """Test the peak magnitude becomes 1 and normalizing is idempotent."""
        from rayverb.core.profiler import normalize_kernel

        kernel = normalize_kernel([0.0, -4.0, 2.0])
        np.testing.assert_allclose(kernel, [0.0, -1.0, 0.5])
        np.testing.assert_allclose(normalize_kernel(kernel), kernel)

    def test_normalize_degenerate(self):
        """Test empty and silent kernels."""
        from rayverb.core.profiler import is_empty_kernel, normalize_kernel

        np.testing.assert_array_equal(normalize_kernel([]), [0.0])
        np.testing.assert_array_equal(normalize_kernel([0.0, 0.0]), [0.0, 0.0])
        assert is_empty_kernel(np.zeros(3))
        assert not is_empty_kernel([0.0, 1e-12])


class TestSettings:
    """Tests for ProfileSettings."""

    def test_defaults(self):
        """Test the default parameters."""
        from rayverb.core.profiler import ProfileSettings

        settings = ProfileSettings()
        assert settings.samples == 100000
        assert settings.max_bounces == 10
        assert settings.max_distance == pytest.approx(30.0 * 343.0)
        settings.validate()

    @pytest.mark.parametrize(
        "field,value",
        [
            ("samples", -1),
            ("max_bounces", -1),
            ("max_delay", -0.5),
            ("speed_of_sound", 0.0),
            ("sample_rate", 0.0),
            ("decay", 1.5),
        ],
    )
    def test_validate(self, field, value):
        """Test out-of-range parameters raise ValueError."""
        from dataclasses import replace

        from rayverb.core.profiler import ProfileSettings

        with pytest.raises(ValueError):
            replace(ProfileSettings(), **{field: value}).validate()


class TestRoomProfiler:
    """Tests for RoomProfiler."""

    def test_progressive_batches(self, small_room):
        """Test progress is yielded after each batch."""
        from rayverb.core.profiler import ProfileSettings, RoomProfiler
        from rayverb.scene.room import create_room_scene

        _, speaker = create_room_scene(small_room)
        profiler = RoomProfiler(speaker, ProfileSettings(samples=100, max_bounces=3))
        progress = list(profiler.run_progressive(batch_size=30))

        assert progress == [(30, 100), (60, 100), (90, 100), (100, 100)]
        assert profiler.trial_count == 100

    def test_callback_and_reset(self, small_room):
        """Test the callback sees every batch and reset discards trials."""
        from rayverb.core.profiler import ProfileSettings, RoomProfiler
        from rayverb.scene.room import create_room_scene

        _, speaker = create_room_scene(small_room)
        profiler = RoomProfiler(speaker, ProfileSettings(samples=2000, max_bounces=5))
        calls = []
        profiler.run(batch_size=500, callback=lambda done, total: calls.append((done, total)))

        assert calls[-1] == (2000, 2000)
        assert len(calls) == 4
        assert profiler.hit_count > 0

        profiler.reset()
        assert profiler.trial_count == 0
        assert profiler.hit_count == 0
        assert len(profiler.raw_kernel()) == 0

    def test_invalid_batch_size(self, small_room):
        """Test non-positive batch sizes raise ValueError."""
        from rayverb.core.profiler import RoomProfiler

        profiler = RoomProfiler((5, 5, 1))
        with pytest.raises(ValueError):
            list(profiler.run_progressive(num_samples=10, batch_size=0))

    def test_invalid_settings(self):
        """Test the profiler validates its settings."""
        from rayverb.core.profiler import ProfileSettings, RoomProfiler

        with pytest.raises(ValueError):
            RoomProfiler((0, 0, 0), ProfileSettings(decay=-0.1))

    def test_unreachable_target_warns(self, caplog):
        """Test a scene without a target yields the zero kernel and a warning."""
        from rayverb.core.profiler import ProfileSettings, RoomProfiler
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_box((0, 0, 0), 10, 10, 10)
        profiler = RoomProfiler((5, 5, 5), ProfileSettings(samples=200, max_bounces=3))
        profiler.run()

        with caplog.at_level(logging.WARNING, logger="rayverb.core.profiler"):
            kernel = profiler.kernel()
        np.testing.assert_array_equal(kernel, [0.0])
        assert "No target hits" in caplog.text

    def test_unreachable_target_raises(self):
        """Test raise_on_empty turns the empty kernel into an error."""
        from rayverb.core.profiler import ProfileSettings, RoomProfiler
        from rayverb.errors import UnreachableTargetError
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_box((0, 0, 0), 10, 10, 10)
        profiler = RoomProfiler(
            (5, 5, 5), ProfileSettings(samples=200, max_bounces=3), raise_on_empty=True
        )
        profiler.run()
        with pytest.raises(UnreachableTargetError):
            profiler.kernel()


class TestProfileRoom:
    """End-to-end tests producing kernels."""

    def test_closed_room_kernel(self):
        """Test a closed room with a sphere target gives a usable kernel."""
        from rayverb.core.profiler import profile_room
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_box((0, 0, 0), 10, 10, 10)
        scene.set_target_sphere((5, 5, 7), 2.0)
        kernel = profile_room((5, 5, 1), samples=5000, max_bounces=5)

        assert not np.all(kernel == 0.0)
        assert np.max(np.abs(kernel)) == pytest.approx(1.0)
        assert np.all(kernel >= 0.0)
        # Nothing arrives before the direct gap of 4 m
        first = int(np.flatnonzero(kernel)[0])
        assert first >= int(44100.0 * 4.0 / 343.0) - 1

    def test_large_target_scenario(self):
        """Test the kernel peaks at the straight direct-path arrival."""
        from rayverb.core.profiler import ProfileSettings, RoomProfiler
        from rayverb.core.tracer import trace_ray
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_box((0, 0, 0), 10, 10, 10)
        scene.set_target_sphere((5, 5, 9.5), 5.0)
        settings = ProfileSettings(samples=100000, max_bounces=1)
        profiler = RoomProfiler((5, 5, 1), settings)
        profiler.run()
        kernel = profiler.kernel()

        assert profiler.trial_count == 100000
        assert profiler.hit_count > 0
        assert np.max(kernel) == 1.0

        # Straight up: ceiling at 9 plus sphere at 3.5, both counted
        direct = trace_ray((5, 5, 1), (0, 0, 1), max_bounces=0, max_distance=settings.max_distance)
        assert len(direct) == 1
        assert abs(direct[0].distance - 12.5) < 1e-9
        expected = int(np.floor(44100.0 * direct[0].distance / 343.0 + 0.5))
        assert expected == 1607
        assert int(np.argmax(kernel)) == expected

    def test_fully_decayed_hits_still_reach_target(self, caplog):
        """Test hits attenuated to zero are not reported as unreachable."""
        from rayverb.core.profiler import ProfileSettings, RoomProfiler
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_box((0, 0, 0), 10, 10, 10)
        # Emission directions all have y >= 0, so only reflections reach y < 3
        scene.set_target_sphere((5, 2, 5), 1.0)
        profiler = RoomProfiler(
            (5, 5, 5), ProfileSettings(samples=2000, max_bounces=3, decay=1.0), raise_on_empty=True
        )
        profiler.run()

        with caplog.at_level(logging.WARNING, logger="rayverb.core.profiler"):
            kernel = profiler.kernel()
        assert profiler.hit_count > 0
        assert len(kernel) > 1
        assert not np.any(kernel)
        assert "No target hits" not in caplog.text

    def test_delay_cap_bounds_kernel_length(self):
        """Test a short max_delay keeps the kernel short."""
        from rayverb.core.profiler import profile_room
        from rayverb.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_box((0, 0, 0), 10, 10, 10)
        scene.set_target_sphere((5, 5, 7), 2.0)
        kernel = profile_room((5, 5, 1), samples=2000, max_bounces=50, max_delay=0.1)

        # Steps start within 34.3 m; one step adds at most two box diagonals
        longest = 0.1 * 343.0 + 2.0 * np.sqrt(300.0)
        assert len(kernel) <= int(44100.0 * longest / 343.0) + 2

    def test_profile_shoebox(self, small_room):
        """Test the shoebox helper builds the room and profiles it."""
        from rayverb.core.profiler import ProfileSettings, profile_shoebox
        from rayverb.scene.intersection import get_primitive_count, has_target

        kernel = profile_shoebox(small_room, ProfileSettings(samples=5000, max_bounces=8))
        assert get_primitive_count() == 6
        assert has_target()
        assert np.max(np.abs(kernel)) == pytest.approx(1.0)
