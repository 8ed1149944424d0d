"""Audio module for WAV I/O, kernel persistence and reverb application.

Components:
    wav: AudioClip plus WAV and .npy kernel reading/writing
    reverb: Convolving clips with room kernels
"""

from .reverb import apply_reverb, peak_normalize
from .wav import AudioClip, load_kernel, read_wav, save_kernel, write_wav

__all__ = [
    "AudioClip",
    "read_wav",
    "write_wav",
    "save_kernel",
    "load_kernel",
    "apply_reverb",
    "peak_normalize",
]
