import numpy as np
from scipy.spatial.distance import pdist, squareform

from .exceptions import (
    DimensionMismatchError,
    EmptySetError,
    IndexOutOfRangeError,
    NotComputedError,
    ShapeMismatchError,
)


class VectorSet:
    """Ordered collection of points sharing one dimensionality.

    The set owns its points and a cached matrix of pairwise Euclidean
    distances. The matrix is a snapshot: it is only (re)computed by
    :meth:`compute_distance_matrix` and is tagged with the generation of the
    points it was computed from. Any mutation of the points bumps the
    generation, after which reading the matrix raises
    :class:`~sksammon.exceptions.NotComputedError` until it is recomputed.

    Parameters
    ----------
    dimensionality : int
        Number of coordinates of every point. Fixed for the lifetime of the
        set.

    points : array-like of shape (n_points, dimensionality), default=None
        Initial points, appended in order.

    Examples
    --------
    >>> from sksammon import VectorSet
    >>> v = VectorSet(2)
    >>> v.add([0.0, 0.0])
    >>> v.add([3.0, 4.0])
    >>> v.compute_distance_matrix()
    array([[0., 5.],
           [5., 0.]])
    >>> v.get_normalizing_constant()
    5.0
    """

    def __init__(self, dimensionality, points=None):
        if (
            isinstance(dimensionality, (bool, np.bool_))
            or not isinstance(dimensionality, (int, np.integer))
            or dimensionality < 1
        ):
            raise ValueError(
                f"dimensionality must be a positive integer, got {dimensionality!r}"
            )
        self._dimensionality = int(dimensionality)
        self._points = np.empty((0, self._dimensionality), dtype=np.float64)
        self._generation = 0
        self._distances = None
        self._distances_generation = None

        if points is not None:
            for point in points:
                self.add(point)

    @classmethod
    def from_array(cls, X):
        """Build a set from a 2-D array, one row per point."""
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2:
            raise ValueError(f"Expected a 2-D array, got shape {X.shape}")
        vectors = cls(X.shape[1])
        vectors._points = X.copy()
        vectors._touch()
        return vectors

    @property
    def dimensionality(self):
        return self._dimensionality

    @property
    def n_points(self):
        return self._points.shape[0]

    def __len__(self):
        return self.n_points

    def __repr__(self):
        return (
            f"{type(self).__name__}(dimensionality={self._dimensionality}, "
            f"n_points={self.n_points})"
        )

    @property
    def points(self):
        """Copy of the points as an array of shape (n_points, dimensionality)."""
        return self._points.copy()

    def to_array(self):
        return self.points

    def _touch(self):
        # Any change to the points makes the cached distances stale.
        self._generation += 1

    def _check_point_index(self, i):
        if not 0 <= i < self.n_points:
            raise IndexOutOfRangeError(
                f"Point index {i} is out of range for a set of {self.n_points} points"
            )

    def _check_dim_index(self, dim):
        if not 0 <= dim < self._dimensionality:
            raise IndexOutOfRangeError(
                f"Dimension index {dim} is out of range for dimensionality "
                f"{self._dimensionality}"
            )

    def add(self, point):
        """Append a point.

        Raises
        ------
        DimensionMismatchError
            If the point does not have ``dimensionality`` coordinates.
        """
        point = np.asarray(point, dtype=np.float64).ravel()
        if point.shape[0] != self._dimensionality:
            raise DimensionMismatchError(
                f"Point has {point.shape[0]} coordinates, expected "
                f"{self._dimensionality}"
            )
        self._points = np.vstack([self._points, point[None, :]])
        self._touch()

    def clear(self):
        self._points = np.empty((0, self._dimensionality), dtype=np.float64)
        self._touch()

    def populate(self, count, max_range, random_state=None):
        """Replace the points with ``count`` uniformly random points.

        Each coordinate is drawn independently from
        ``[-max_range / 2, max_range / 2]``.

        Parameters
        ----------
        count : int
            Number of points to generate.
        max_range : float
            Width of the sampling interval on every axis.
        random_state : int, numpy.random.Generator or None
            Seed or generator passed to :func:`numpy.random.default_rng`.
        """
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        rng = np.random.default_rng(random_state)
        half = 0.5 * abs(max_range)
        self._points = rng.uniform(-half, half, size=(count, self._dimensionality))
        self._touch()

    def replace_with(self, other):
        """Take over the points of ``other``.

        The cached distance matrix becomes stale.

        Raises
        ------
        ShapeMismatchError
            If the dimensionalities differ, or if this set already holds points
            and ``other`` holds a different number of them.
        """
        if other.dimensionality != self._dimensionality:
            raise ShapeMismatchError(
                f"Cannot replace a set of dimensionality {self._dimensionality} "
                f"with one of dimensionality {other.dimensionality}"
            )
        if self.n_points and other.n_points != self.n_points:
            raise ShapeMismatchError(
                f"Cannot replace {self.n_points} points with {other.n_points}"
            )
        self._points = other.points
        self._touch()

    @property
    def is_stale(self):
        """True when the distance matrix is missing or older than the points."""
        return self._distances is None or self._distances_generation != self._generation

    def compute_distance_matrix(self):
        """Compute, cache and return the pairwise Euclidean distance matrix.

        Raises
        ------
        EmptySetError
            If the set holds no points.
        """
        if self.n_points == 0:
            raise EmptySetError("Cannot compute distances of an empty set")
        if self.n_points == 1:
            distances = np.zeros((1, 1))
        else:
            distances = squareform(pdist(self._points, metric="euclidean"))
        self._distances = distances
        self._distances_generation = self._generation
        return self.distance_matrix

    @property
    def distance_matrix(self):
        """The cached distance matrix (read-only view)."""
        if self.is_stale:
            raise NotComputedError(
                "The distance matrix is not computed for the current points; "
                "call compute_distance_matrix() first"
            )
        view = self._distances.view()
        view.flags.writeable = False
        return view

    def get_distance(self, i, j):
        distances = self.distance_matrix
        self._check_point_index(i)
        self._check_point_index(j)
        return float(distances[i, j])

    def get(self, i, dim):
        """Coordinate ``dim`` of point ``i``."""
        self._check_point_index(i)
        self._check_dim_index(dim)
        return float(self._points[i, dim])

    def get_dim_data(self, dim):
        """All coordinates along axis ``dim``, in point order."""
        self._check_dim_index(dim)
        return self._points[:, dim].copy()

    def get_range(self, dim):
        """Spread (max - min) of coordinate ``dim`` across all points."""
        self._check_dim_index(dim)
        if self.n_points == 0:
            raise EmptySetError("Cannot compute the range of an empty set")
        return float(np.ptp(self._points[:, dim]))

    def get_normalizing_constant(self):
        """Sum of the distances over all unordered pairs of points."""
        distances = self.distance_matrix
        return float(np.sum(distances[np.triu_indices_from(distances, k=1)]))

    def diff(self, other):
        """Sum of squared coordinate differences between two sets.

        Raises
        ------
        ShapeMismatchError
            If the sets differ in point count or dimensionality.
        """
        if (
            other.dimensionality != self._dimensionality
            or other.n_points != self.n_points
        ):
            raise ShapeMismatchError(
                f"Cannot compare a set of shape ({self.n_points}, "
                f"{self._dimensionality}) with one of shape ({other.n_points}, "
                f"{other.dimensionality})"
            )
        return float(np.sum((self._points - other._points) ** 2))
