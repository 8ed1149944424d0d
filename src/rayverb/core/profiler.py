"""Monte Carlo room profiler producing impulse-response kernels.

The profiler fires random rays from a source point, traces them through the
current scene (rayverb.core.tracer) and bins every accepted target hit by its
arrival time:

    index = round(sample_rate * distance / speed_of_sound)
    value = base_amplitude / distance * (1 - decay) ** bounce

Contributions at the same index are summed. The kernel is scaled so its peak
magnitude is 1 only once all trials have been merged.

Trials run in parallel batches sized to the tracer's hit buffer; each batch
is binned with NumPy on the host and merged by summation. Sampling follows
Taichi's random state, so ``ti.init(random_seed=...)`` makes runs repeatable.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, default_fp=ti.f64, random_seed=1)
    >>> from rayverb.scene.room import RoomParams, create_room_scene
    >>> from rayverb.core.profiler import ProfileSettings, RoomProfiler
    >>>
    >>> scene, speaker = create_room_scene(RoomParams())
    >>> profiler = RoomProfiler(speaker, ProfileSettings(samples=20000))
    >>> profiler.run(callback=lambda done, total: print(f"{done}/{total}"))
    >>> kernel = profiler.kernel()
"""

import logging
from collections.abc import Callable, Generator, Sequence
from dataclasses import dataclass, replace

import numpy as np
import numpy.typing as npt

from rayverb.core.tracer import max_paths_per_batch, trace_batch
from rayverb.errors import UnreachableTargetError
from rayverb.scene.room import RoomParams, create_room_scene

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (completed_trials, target_trials)
ProgressCallback = Callable[[int, int], None]


@dataclass
class ProfileSettings:
    """Numeric parameters of a profiling run.

    Attributes:
        samples: Number of rays fired from the source.
        max_bounces: Maximum reflections per ray.
        max_delay: Longest arrival time considered, in seconds.
        speed_of_sound: Propagation speed in meters per second.
        decay: Fraction of amplitude lost at each reflection, in [0, 1].
        base_amplitude: Amplitude of a hit at unit distance without bounces.
        sample_rate: Kernel sample rate in Hz.
    """

    samples: int = 100000
    max_bounces: int = 10
    max_delay: float = 30.0
    speed_of_sound: float = 343.0
    decay: float = 0.05
    base_amplitude: float = 1.0
    sample_rate: float = 44100.0

    @property
    def max_distance(self) -> float:
        """Longest path length a ray may travel."""
        return self.max_delay * self.speed_of_sound

    def validate(self) -> None:
        """Check parameter ranges.

        Raises:
            ValueError: If any parameter is out of range.
        """
        if self.samples < 0:
            raise ValueError(f"samples must be non-negative, got {self.samples}")
        if self.max_bounces < 0:
            raise ValueError(f"max_bounces must be non-negative, got {self.max_bounces}")
        if self.max_delay < 0.0:
            raise ValueError(f"max_delay must be non-negative, got {self.max_delay}")
        if self.speed_of_sound <= 0.0:
            raise ValueError(f"speed_of_sound must be positive, got {self.speed_of_sound}")
        if self.sample_rate <= 0.0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if not 0.0 <= self.decay <= 1.0:
            raise ValueError(f"decay must be in [0, 1], got {self.decay}")


# =============================================================================
# Kernel Binning
# =============================================================================


def bin_hits(
    distances: npt.ArrayLike,
    bounces: npt.ArrayLike,
    speed_of_sound: float,
    decay: float,
    base_amplitude: float,
    sample_rate: float,
) -> npt.NDArray[np.float64]:
    """Accumulate hit records into an unnormalized kernel.

    Args:
        distances: Total distance of each hit.
        bounces: Bounce count of each hit.
        speed_of_sound: Propagation speed.
        decay: Amplitude loss per bounce.
        base_amplitude: Amplitude at unit distance.
        sample_rate: Kernel sample rate.

    Returns:
        Array sized to the largest observed index + 1 (empty if there are no
        hits). Unobserved indices are 0.
    """
    distances = np.asarray(distances, dtype=np.float64)
    bounces = np.asarray(bounces, dtype=np.float64)
    if distances.size == 0:
        return np.zeros(0, dtype=np.float64)

    # Round half up
    indices = np.floor(sample_rate * distances / speed_of_sound + 0.5).astype(np.int64)
    contributions = base_amplitude / distances * np.power(1.0 - decay, bounces)
    return np.bincount(indices, weights=contributions)


def merge_kernels(
    first: npt.NDArray[np.float64],
    second: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """Sum two unnormalized kernels, padding the shorter with zeros."""
    if len(first) < len(second):
        first, second = second, first
    merged = first.astype(np.float64, copy=True)
    merged[: len(second)] += second
    return merged


def normalize_kernel(kernel: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Scale a kernel so its peak magnitude is 1.

    An empty kernel becomes the length-1 zero kernel; an all-zero kernel is
    returned unchanged.
    """
    kernel = np.asarray(kernel, dtype=np.float64)
    if kernel.size == 0:
        return np.zeros(1, dtype=np.float64)
    peak = np.max(np.abs(kernel))
    if peak == 0.0:
        return kernel.copy()
    return kernel / peak


def is_empty_kernel(kernel: npt.ArrayLike) -> bool:
    """True if the kernel carries no signal (all entries are zero)."""
    return not np.any(np.asarray(kernel))


# =============================================================================
# Room Profiler
# =============================================================================


class RoomProfiler:
    """Accumulates profiling trials into a kernel over several calls.

    The scene and target are whatever is loaded in rayverb.scene at the
    time of each call; keep them unchanged while trials accumulate.

    Attributes:
        source: The emission point.
        settings: The profiling parameters.
        raise_on_empty: Raise UnreachableTargetError from kernel() instead of
            returning the length-1 zero kernel.
    """

    def __init__(
        self,
        source: Sequence[float],
        settings: ProfileSettings | None = None,
        raise_on_empty: bool = False,
    ) -> None:
        """Initialize the profiler.

        Raises:
            ValueError: If the settings are out of range.
        """
        if settings is None:
            settings = ProfileSettings()
        settings.validate()
        self.source = (float(source[0]), float(source[1]), float(source[2]))
        self.settings = settings
        self.raise_on_empty = raise_on_empty
        self._accumulated = np.zeros(0, dtype=np.float64)
        self._trial_count = 0
        self._hit_count = 0

    @property
    def trial_count(self) -> int:
        """Number of rays traced since the last reset."""
        return self._trial_count

    @property
    def hit_count(self) -> int:
        """Number of accepted target hits since the last reset."""
        return self._hit_count

    @property
    def default_batch_size(self) -> int:
        """Largest batch whose hits always fit the tracer's buffer."""
        return max_paths_per_batch(self.settings.max_bounces)

    def reset(self) -> None:
        """Discard all accumulated trials."""
        self._accumulated = np.zeros(0, dtype=np.float64)
        self._trial_count = 0
        self._hit_count = 0

    def _run_batch(self, num_paths: int) -> None:
        s = self.settings
        distances, bounces = trace_batch(self.source, num_paths, s.max_bounces, s.max_distance)
        batch_kernel = bin_hits(
            distances, bounces, s.speed_of_sound, s.decay, s.base_amplitude, s.sample_rate
        )
        self._accumulated = merge_kernels(self._accumulated, batch_kernel)
        self._trial_count += num_paths
        self._hit_count += len(distances)
        logger.debug("Traced %d paths, %d target hits", num_paths, len(distances))

    def run_progressive(
        self,
        num_samples: int | None = None,
        batch_size: int | None = None,
    ) -> Generator[tuple[int, int], None, None]:
        """Trace rays in batches, yielding progress after each batch.

        Args:
            num_samples: Rays to add; defaults to settings.samples.
            batch_size: Rays per batch; defaults to default_batch_size and
                is capped by it.

        Yields:
            Tuple of (completed_trials, target_trials).

        Raises:
            ValueError: If batch_size is not positive.
        """
        if num_samples is None:
            num_samples = self.settings.samples
        if batch_size is None:
            batch_size = self.default_batch_size
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        batch_size = min(batch_size, self.default_batch_size)

        if num_samples <= 0:
            return

        target_trials = self._trial_count + num_samples
        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            self._run_batch(batch)
            remaining -= batch
            yield (self._trial_count, target_trials)

    def run(
        self,
        num_samples: int | None = None,
        batch_size: int | None = None,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Trace rays in batches with an optional progress callback.

        Args:
            num_samples: Rays to add; defaults to settings.samples.
            batch_size: Rays per batch before each callback.
            callback: Called after each batch with
                (completed_trials, target_trials).
        """
        for done, total in self.run_progressive(num_samples, batch_size):
            if callback is not None:
                callback(done, total)

    def raw_kernel(self) -> npt.NDArray[np.float64]:
        """The accumulated kernel before peak normalization."""
        return self._accumulated.copy()

    def kernel(self) -> npt.NDArray[np.float64]:
        """The peak-normalized kernel.

        Hits that were all attenuated to zero (decay of 1 with only reflected
        arrivals) still count as reaching the target; the silent kernel is
        returned as is.

        Returns:
            The kernel, or the length-1 zero kernel if the target was never
            reached.

        Raises:
            UnreachableTargetError: If no hits were recorded and
                raise_on_empty is set.
        """
        if self._hit_count == 0:
            message = f"No target hits after {self._trial_count} trials from {self.source}"
            if self.raise_on_empty:
                raise UnreachableTargetError(message)
            logger.warning(message)
            return np.zeros(1, dtype=np.float64)
        return normalize_kernel(self._accumulated)

    def __repr__(self) -> str:
        return (
            f"RoomProfiler(source={self.source}, trials={self._trial_count}, "
            f"hits={self._hit_count})"
        )


def profile_room(
    source: Sequence[float],
    settings: ProfileSettings | None = None,
    raise_on_empty: bool = False,
    callback: ProgressCallback | None = None,
    **overrides,
) -> npt.NDArray[np.float64]:
    """Profile the current scene from ``source`` in one call.

    Args:
        source: The emission point.
        settings: Profiling parameters; defaults to ProfileSettings().
        raise_on_empty: Raise UnreachableTargetError when nothing is hit.
        callback: Optional progress callback.
        **overrides: Individual ProfileSettings fields to replace, e.g.
            ``samples=5000``.

    Returns:
        The peak-normalized kernel.
    """
    if settings is None:
        settings = ProfileSettings()
    if overrides:
        settings = replace(settings, **overrides)
    profiler = RoomProfiler(source, settings, raise_on_empty=raise_on_empty)
    profiler.run(callback=callback)
    return profiler.kernel()


def profile_shoebox(
    params: RoomParams | None = None,
    settings: ProfileSettings | None = None,
    raise_on_empty: bool = False,
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.float64]:
    """Build a shoebox room from RoomParams and profile it.

    Replaces the currently loaded scene.
    """
    _, speaker = create_room_scene(params)
    return profile_room(speaker, settings, raise_on_empty=raise_on_empty, callback=callback)
