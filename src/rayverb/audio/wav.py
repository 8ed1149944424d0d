"""WAV and kernel file I/O.

Audio is held as float64 samples in [-1, 1] with shape (channels, frames),
independent of the encoding it was read from. The encoding is remembered so a
clip is written back the way it came in unless told otherwise.

Supported encodings (as produced by scipy.io.wavfile):

    bit_depth  floating  dtype
    8          False     uint8 (offset binary)
    16         False     int16
    32         False     int32 (24-bit files are read into this too)
    32         True      float32
    64         True      float64
"""

from dataclasses import dataclass
from os import PathLike

import numpy as np
import numpy.typing as npt
from scipy.io import wavfile

from rayverb.errors import UnsupportedFormatError

# (bit_depth, floating) -> dtype
_ENCODINGS: dict[tuple[int, bool], type] = {
    (8, False): np.uint8,
    (16, False): np.int16,
    (32, False): np.int32,
    (32, True): np.float32,
    (64, True): np.float64,
}


@dataclass
class AudioClip:
    """Multichannel audio with its sample encoding.

    Attributes:
        samples: Float64 array of shape (channels, frames), values in [-1, 1].
        sample_rate: Frames per second.
        bit_depth: Bits per sample of the file encoding.
        floating: Whether the file encoding is IEEE float.
    """

    samples: npt.NDArray[np.float64]
    sample_rate: int
    bit_depth: int = 16
    floating: bool = False

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples, dtype=np.float64)
        if samples.ndim == 1:
            samples = samples[np.newaxis, :]
        if samples.ndim != 2:
            raise ValueError(f"samples must have shape (channels, frames), got {samples.shape}")
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        self.samples = samples

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frames(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.frames / self.sample_rate


def _to_float(data: np.ndarray) -> tuple[npt.NDArray[np.float64], int, bool]:
    """Convert raw wavfile data to float64 in [-1, 1] and its encoding."""
    if data.dtype == np.uint8:
        return (data.astype(np.float64) - 128.0) / 128.0, 8, False
    if data.dtype == np.int16:
        return data.astype(np.float64) / 32768.0, 16, False
    if data.dtype == np.int32:
        return data.astype(np.float64) / 2147483648.0, 32, False
    if data.dtype == np.float32:
        return data.astype(np.float64), 32, True
    if data.dtype == np.float64:
        return data.copy(), 64, True
    raise UnsupportedFormatError(f"Unsupported WAV sample type: {data.dtype}")


def _from_float(samples: npt.NDArray[np.float64], bit_depth: int, floating: bool) -> np.ndarray:
    """Encode float64 samples in [-1, 1] into the requested sample type."""
    dtype = _ENCODINGS.get((bit_depth, floating))
    if dtype is None:
        kind = "float" if floating else "PCM"
        raise UnsupportedFormatError(f"Unsupported WAV encoding: {bit_depth}-bit {kind}")

    clipped = np.clip(samples, -1.0, 1.0)
    if floating:
        return clipped.astype(dtype)
    if bit_depth == 8:
        return np.clip(np.round(clipped * 128.0 + 128.0), 0, 255).astype(np.uint8)
    info = np.iinfo(dtype)
    return np.clip(np.round(clipped * (info.max + 1.0)), info.min, info.max).astype(dtype)


def read_wav(path: str | PathLike) -> AudioClip:
    """Read a WAV file.

    Args:
        path: File to read.

    Returns:
        The decoded AudioClip.

    Raises:
        UnsupportedFormatError: If the file holds no samples or an
            unsupported sample type.
    """
    sample_rate, data = wavfile.read(path)
    if data.size == 0:
        raise UnsupportedFormatError(f"WAV file {path} contains no samples")

    samples, bit_depth, floating = _to_float(data)
    # wavfile returns (frames,) or (frames, channels)
    if samples.ndim == 1:
        samples = samples[np.newaxis, :]
    else:
        samples = samples.T
    return AudioClip(samples=samples, sample_rate=int(sample_rate), bit_depth=bit_depth, floating=floating)


def write_wav(
    path: str | PathLike,
    clip: AudioClip,
    bit_depth: int | None = None,
    floating: bool | None = None,
) -> None:
    """Write a clip as a WAV file.

    Args:
        path: Destination file.
        clip: The audio to write. Samples outside [-1, 1] are clipped.
        bit_depth: Override the clip's bit depth.
        floating: Override the clip's float flag.

    Raises:
        UnsupportedFormatError: If the encoding is not supported or the clip
            is empty.
    """
    if clip.frames == 0:
        raise UnsupportedFormatError("Cannot write an empty clip")
    depth = clip.bit_depth if bit_depth is None else bit_depth
    is_float = clip.floating if floating is None else floating

    encoded = _from_float(clip.samples, depth, is_float)
    data = encoded[0] if clip.channels == 1 else encoded.T
    wavfile.write(path, clip.sample_rate, np.ascontiguousarray(data))


# =============================================================================
# Kernel Persistence
# =============================================================================


def save_kernel(path: str | PathLike, kernel: npt.ArrayLike) -> None:
    """Save a kernel as a NumPy .npy file."""
    np.save(path, np.asarray(kernel, dtype=np.float64))


def load_kernel(path: str | PathLike) -> npt.NDArray[np.float64]:
    """Load a kernel saved with save_kernel.

    Raises:
        ValueError: If the file does not hold a non-empty 1-D array.
    """
    kernel = np.load(path, allow_pickle=False)
    if kernel.ndim != 1 or kernel.size == 0:
        raise ValueError(f"Expected a non-empty 1-D kernel, got shape {kernel.shape}")
    return kernel.astype(np.float64)
