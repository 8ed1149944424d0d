"""Unit tests for WAV and kernel file I/O.

Tests cover:
- AudioClip shape handling
- Round trips for every supported encoding
- Clipping and unsupported encodings
- Kernel .npy persistence
"""

import numpy as np
import pytest

STEREO = np.array([[0.0, 0.5, -0.5, 0.25], [1.0 - 2**-7, -1.0, 0.125, 0.0]])


class TestAudioClip:
    """Tests for the AudioClip container."""

    def test_mono_is_promoted(self):
        """Test 1-D samples become a single channel."""
        from rayverb.audio.wav import AudioClip

        clip = AudioClip(np.zeros(441), 44100)
        assert clip.channels == 1
        assert clip.frames == 441
        assert clip.duration == pytest.approx(0.01)

    def test_invalid_clip(self):
        """Test bad shapes and sample rates raise ValueError."""
        from rayverb.audio.wav import AudioClip

        with pytest.raises(ValueError):
            AudioClip(np.zeros((1, 2, 3)), 44100)
        with pytest.raises(ValueError):
            AudioClip(np.zeros(4), 0)


class TestWavIO:
    """Tests for read_wav and write_wav."""

    @pytest.mark.parametrize(
        "bit_depth,floating",
        [(8, False), (16, False), (32, False), (32, True), (64, True)],
    )
    def test_round_trip(self, tmp_path, bit_depth, floating):
        """Test samples, channels, rate and encoding survive a round trip."""
        from rayverb.audio.wav import AudioClip, read_wav, write_wav

        path = tmp_path / "clip.wav"
        write_wav(path, AudioClip(STEREO, 22050, bit_depth, floating))
        clip = read_wav(path)

        assert clip.channels == 2
        assert clip.frames == 4
        assert clip.sample_rate == 22050
        assert (clip.bit_depth, clip.floating) == (bit_depth, floating)
        np.testing.assert_allclose(clip.samples, STEREO, atol=1e-9)

    def test_mono_round_trip(self, tmp_path):
        """Test a mono clip stays mono."""
        from rayverb.audio.wav import AudioClip, read_wav, write_wav

        path = tmp_path / "mono.wav"
        write_wav(path, AudioClip(np.array([0.0, 0.5, -0.5]), 8000))
        clip = read_wav(path)
        assert clip.samples.shape == (1, 3)
        np.testing.assert_allclose(clip.samples[0], [0.0, 0.5, -0.5])

    def test_encoding_override(self, tmp_path):
        """Test writing a clip with a different encoding than it carries."""
        from rayverb.audio.wav import AudioClip, read_wav, write_wav

        path = tmp_path / "float.wav"
        write_wav(path, AudioClip(STEREO, 44100), bit_depth=32, floating=True)
        clip = read_wav(path)
        assert clip.floating
        assert clip.bit_depth == 32

    def test_out_of_range_samples_are_clipped(self, tmp_path):
        """Test samples beyond [-1, 1] are clipped on write."""
        from rayverb.audio.wav import AudioClip, read_wav, write_wav

        path = tmp_path / "loud.wav"
        write_wav(path, AudioClip(np.array([1.5, -3.0, 0.0]), 8000, 32, True))
        np.testing.assert_allclose(read_wav(path).samples[0], [1.0, -1.0, 0.0])

    def test_unsupported_encoding(self, tmp_path):
        """Test unsupported encodings raise UnsupportedFormatError."""
        from rayverb.audio.wav import AudioClip, write_wav
        from rayverb.errors import UnsupportedFormatError

        with pytest.raises(UnsupportedFormatError):
            write_wav(tmp_path / "x.wav", AudioClip(STEREO, 44100, 24, False))
        with pytest.raises(UnsupportedFormatError):
            write_wav(tmp_path / "y.wav", AudioClip(STEREO, 44100, 16, True))

    def test_empty_clip(self, tmp_path):
        """Test an empty clip cannot be written."""
        from rayverb.audio.wav import AudioClip, write_wav
        from rayverb.errors import UnsupportedFormatError

        with pytest.raises(UnsupportedFormatError):
            write_wav(tmp_path / "empty.wav", AudioClip(np.zeros((1, 0)), 44100))


class TestKernelFiles:
    """Tests for save_kernel and load_kernel."""

    def test_round_trip(self, tmp_path):
        """Test kernels are stored exactly."""
        from rayverb.audio.wav import load_kernel, save_kernel

        kernel = np.array([0.0, 0.0, 1.0, 0.3, -0.1])
        path = tmp_path / "room.npy"
        save_kernel(path, kernel)
        np.testing.assert_array_equal(load_kernel(path), kernel)

    def test_rejects_non_kernel_arrays(self, tmp_path):
        """Test 2-D and empty arrays are rejected on load."""
        from rayverb.audio.wav import load_kernel

        np.save(tmp_path / "matrix.npy", np.zeros((2, 2)))
        np.save(tmp_path / "empty.npy", np.zeros(0))
        with pytest.raises(ValueError):
            load_kernel(tmp_path / "matrix.npy")
        with pytest.raises(ValueError):
            load_kernel(tmp_path / "empty.npy")
