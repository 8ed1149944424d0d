"""Applying a room kernel to audio."""

import numpy as np
import numpy.typing as npt

from rayverb.audio.wav import AudioClip
from rayverb.core.convolution import TransformContext, rfft_convolve, rfft_convolve_streaming


def peak_normalize(samples: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Scale samples so the largest magnitude is 1 (silence is unchanged)."""
    samples = np.asarray(samples, dtype=np.float64)
    peak = np.max(np.abs(samples)) if samples.size else 0.0
    if peak == 0.0:
        return samples.copy()
    return samples / peak


def apply_reverb(
    clip: AudioClip,
    kernel: npt.ArrayLike,
    context: TransformContext | None = None,
    block_size: int | None = None,
    normalize: bool = True,
) -> AudioClip:
    """Convolve every channel of a clip with a room kernel.

    Args:
        clip: The dry audio.
        kernel: The room kernel at the clip's sample rate.
        context: Plan cache shared across channels; created if omitted.
        block_size: If given, channels are processed in blocks of this size
            and the output keeps the input length. Otherwise the full
            convolution is returned, including the reverb tail.
        normalize: Peak-normalize the result across all channels.

    Returns:
        A new AudioClip with the clip's sample rate and encoding.
    """
    kernel = np.asarray(kernel, dtype=np.float64)
    if context is None:
        context = TransformContext()

    if block_size is None:
        wet = [rfft_convolve(channel, kernel, context) for channel in clip.samples]
    else:
        wet = [rfft_convolve_streaming(channel, kernel, block_size, context) for channel in clip.samples]

    samples = np.stack(wet)
    if normalize:
        samples = peak_normalize(samples)
    return AudioClip(
        samples=samples,
        sample_rate=clip.sample_rate,
        bit_depth=clip.bit_depth,
        floating=clip.floating,
    )
