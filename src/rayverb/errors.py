"""Exception types raised by rayverb.

Each error subclasses the builtin the rest of the package would otherwise
raise, so callers catching ``ValueError``/``RuntimeError`` keep working.
"""


class InvalidGeometryError(ValueError):
    """A primitive was constructed with degenerate geometry.

    Examples are zero-length segments, zero-area triangles, non-coplanar
    quads and spheres with a non-positive radius.
    """


class UnreachableTargetError(RuntimeError):
    """No traced path reached the target during a profiling run."""


class UnsupportedFormatError(ValueError):
    """An audio file uses a sample encoding the codec boundary cannot read."""
