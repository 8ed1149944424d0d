"""Frequency-domain convolution for applying room kernels to audio.

Linear convolution is computed by zero-padding both inputs to a power of two,
multiplying their spectra and transforming back. The inverse transform is run
unnormalized and the product is scaled by 1/n instead, so the arithmetic is
explicit at one place.

Padded work buffers live in a :class:`ConvolutionPlan`, one per buffer
length. A :class:`TransformContext` hands out plans and is created and owned
by the caller; nothing is cached at module level. A context is not safe for
concurrent use.

Example:
    >>> import numpy as np
    >>> from rayverb.core.convolution import TransformContext, rfft_convolve
    >>> ctx = TransformContext()
    >>> out = rfft_convolve(np.array([1.0, 2.0]), np.array([1.0, 1.0]), ctx)
    >>> # out is approximately [1, 3, 2]
"""

import numpy as np
import numpy.typing as npt


def next_power_of_two(n: int) -> int:
    """Smallest power of two greater than or equal to n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (int(n) - 1).bit_length()


class ConvolutionPlan:
    """Preallocated padded buffers for one transform length.

    Attributes:
        size: The padded buffer length (a power of two).
    """

    def __init__(self, size: int):
        if size <= 0 or size & (size - 1):
            raise ValueError(f"Plan size must be a positive power of two, got {size}")
        self.size = size
        self._signal_buffer = np.zeros(size, dtype=np.complex128)
        self._kernel_buffer = np.zeros(size, dtype=np.complex128)

    def convolve(
        self,
        signal: npt.NDArray[np.complex128],
        kernel: npt.NDArray[np.complex128],
    ) -> npt.NDArray[np.complex128]:
        """Linear convolution of two complex sequences using this plan.

        Args:
            signal: First input sequence.
            kernel: Second input sequence.

        Returns:
            Complex array of length len(signal) + len(kernel) - 1.

        Raises:
            ValueError: If the linear result does not fit the plan.
        """
        out_len = len(signal) + len(kernel) - 1
        if out_len > self.size:
            raise ValueError(
                f"Convolution of length {out_len} does not fit plan of size {self.size}"
            )

        self._signal_buffer[:] = 0.0
        self._kernel_buffer[:] = 0.0
        self._signal_buffer[: len(signal)] = signal
        self._kernel_buffer[: len(kernel)] = kernel

        spectrum = np.fft.fft(self._signal_buffer) * np.fft.fft(self._kernel_buffer)
        spectrum *= 1.0 / self.size
        # norm="forward" leaves the inverse unscaled
        result = np.fft.ifft(spectrum, norm="forward")

        # Drop the circular tail introduced by padding
        return result[:out_len]


class TransformContext:
    """Hands out one ConvolutionPlan per distinct buffer length."""

    def __init__(self):
        self._plans: dict[int, ConvolutionPlan] = {}

    def plan(self, size: int) -> ConvolutionPlan:
        """Get the plan for ``size``, creating it on first use."""
        plan = self._plans.get(size)
        if plan is None:
            plan = ConvolutionPlan(size)
            self._plans[size] = plan
        return plan

    def __len__(self) -> int:
        return len(self._plans)


def fft_convolve(
    signal: npt.ArrayLike,
    kernel: npt.ArrayLike,
    context: TransformContext | None = None,
) -> npt.NDArray[np.complex128]:
    """Linear convolution of two complex sequences via FFT.

    Args:
        signal: First input sequence (non-empty).
        kernel: Second input sequence (non-empty).
        context: Plan cache to reuse buffers across calls. A throwaway
            context is used if omitted.

    Returns:
        Complex array of length len(signal) + len(kernel) - 1.

    Raises:
        ValueError: If either input is empty.
    """
    signal = np.asarray(signal, dtype=np.complex128).ravel()
    kernel = np.asarray(kernel, dtype=np.complex128).ravel()
    if len(signal) == 0 or len(kernel) == 0:
        raise ValueError("Cannot convolve an empty sequence")

    if context is None:
        context = TransformContext()
    size = next_power_of_two(len(signal) + len(kernel) - 1)
    return context.plan(size).convolve(signal, kernel)


def rfft_convolve(
    signal: npt.ArrayLike,
    kernel: npt.ArrayLike,
    context: TransformContext | None = None,
) -> npt.NDArray[np.float64]:
    """Real-valued wrapper around :func:`fft_convolve`.

    Inputs are lifted to complex with a zero imaginary part and only the real
    part of the result is returned.
    """
    lifted_signal = np.asarray(signal, dtype=np.float64).astype(np.complex128)
    lifted_kernel = np.asarray(kernel, dtype=np.float64).astype(np.complex128)
    return fft_convolve(lifted_signal, lifted_kernel, context).real


class StreamingConvolver:
    """Block-by-block convolution of one channel with a fixed kernel.

    Uses overlap-retain: the trailing ``len(kernel) - 1`` input samples are
    kept between blocks, and each block emits exactly as many output samples
    as it consumed. Concatenated outputs equal the one-shot convolution
    truncated to the input length.

    Example:
        >>> conv = StreamingConvolver(kernel)
        >>> for block in blocks:
        ...     out = conv.process(block)
    """

    def __init__(self, kernel: npt.ArrayLike, context: TransformContext | None = None):
        self.kernel = np.asarray(kernel, dtype=np.float64).ravel()
        if len(self.kernel) == 0:
            raise ValueError("Kernel must not be empty")
        self.context = context if context is not None else TransformContext()
        self._history = np.zeros(len(self.kernel) - 1, dtype=np.float64)

    @property
    def history_length(self) -> int:
        """Number of retained input samples between blocks."""
        return len(self._history)

    def reset(self) -> None:
        """Forget the retained history, as if starting a new stream."""
        self._history[:] = 0.0

    def process(self, block: npt.ArrayLike) -> npt.NDArray[np.float64]:
        """Convolve the next block of input.

        Args:
            block: The next input samples (may be empty).

        Returns:
            Output samples, one per input sample of the block.
        """
        block = np.asarray(block, dtype=np.float64).ravel()
        if len(block) == 0:
            return np.zeros(0, dtype=np.float64)

        retained = len(self._history)
        buffer = np.concatenate([self._history, block])
        result = rfft_convolve(buffer, self.kernel, self.context)

        if retained > 0:
            self._history = buffer[-retained:].copy()
        return result[retained : retained + len(block)]


def rfft_convolve_streaming(
    signal: npt.ArrayLike,
    kernel: npt.ArrayLike,
    block_size: int,
    context: TransformContext | None = None,
) -> npt.NDArray[np.float64]:
    """Convolve a real signal in fixed-size blocks.

    Args:
        signal: The real input signal.
        kernel: The real kernel (non-empty).
        block_size: Number of input samples per block (positive).
        context: Optional plan cache shared across calls.

    Returns:
        Real array with the same length as ``signal``.

    Raises:
        ValueError: If block_size is not positive or the kernel is empty.
    """
    if block_size <= 0:
        raise ValueError(f"block_size must be positive, got {block_size}")

    signal = np.asarray(signal, dtype=np.float64).ravel()
    convolver = StreamingConvolver(kernel, context)

    blocks = [
        convolver.process(signal[start : start + block_size])
        for start in range(0, len(signal), block_size)
    ]
    if not blocks:
        return np.zeros(0, dtype=np.float64)
    return np.concatenate(blocks)
