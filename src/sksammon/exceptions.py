"""Errors raised by :mod:`sksammon`.

Every error derives from a builtin exception so callers that only know about
``ValueError`` or ``IndexError`` keep working.
"""

__all__ = [
    "DegenerateInputError",
    "DimensionMismatchError",
    "EmptySetError",
    "IndexOutOfRangeError",
    "NotComputedError",
    "ShapeMismatchError",
]


class DimensionMismatchError(ValueError):
    """A point's length differs from the dimensionality of its set."""


class ShapeMismatchError(ValueError):
    """Two vector sets were combined although their shapes differ.

    Raised when comparing or replacing sets with a different number of points
    or a different dimensionality.
    """


class EmptySetError(ValueError):
    """A geometric quantity was requested from a set without points."""


class NotComputedError(ValueError, AttributeError):
    """The distance matrix was read before it was computed.

    This covers both a matrix that was never computed and one that is stale
    because the points changed afterwards. Call
    :meth:`~sksammon.VectorSet.compute_distance_matrix` first.

    Inherits from both ValueError and AttributeError, like
    :class:`sklearn.exceptions.NotFittedError`.
    """


class IndexOutOfRangeError(IndexError):
    """A point or coordinate index lies outside the current bounds."""


class DegenerateInputError(ValueError):
    """The mapping produced non-finite coordinates.

    This happens when distinct points coincide, so that the Sammon update
    divides by a zero distance.
    """
