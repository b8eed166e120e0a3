import warnings
from collections import namedtuple

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.exceptions import ConvergenceWarning
from sklearn.utils.validation import check_is_fitted, validate_data

from .._vector_set import VectorSet
from ..exceptions import DegenerateInputError


ALPHA_LOWER_BOUND = 0.3
ALPHA_UPPER_BOUND = 0.4

EPSILON = 1e-6
E2 = 1e-11


MappingResult = namedtuple(
    "MappingResult", ["y", "n_iter", "converged", "status", "diff", "stress"]
)
MappingResult.__doc__ = """Outcome of one :meth:`SammonMap.map` run.

``status`` is ``"converged"``, ``"max_iter"`` (iteration budget exhausted) or
``"cancelled"`` (stopped by the callback).
"""


def stabilize(values, threshold):
    """Push near-zero values away from zero.

    Every entry with ``abs(value) < threshold`` gets ``threshold`` added to it.
    This keeps divisions finite on degenerate configurations (duplicate or
    collinear points) at the price of an approximate step.

    Parameters
    ----------
    values : float or ndarray
        Values about to be used as divisors.
    threshold : float
        Magnitude below which a value is patched.

    Returns
    -------
    stabilized : float or ndarray
        Patched copy of ``values`` (a float when a scalar was given).
    n_patched : int
        Number of entries that were patched.
    """
    stabilized = np.array(values, dtype=np.float64)
    mask = np.abs(stabilized) < threshold
    stabilized[mask] += threshold
    n_patched = int(np.count_nonzero(mask))
    if stabilized.ndim == 0:
        return float(stabilized), n_patched
    return stabilized, n_patched


def gradient_terms(D_hd, Y, D_ld):
    """Per-coordinate numerator and denominator sums of the Sammon update.

    For point ``p``, coordinate ``q`` and every other point ``j``, with
    ``dD = D_hd[p, j] - D_ld[p, j]``, ``prod = D_hd[p, j] * D_ld[p, j]`` and
    ``dY = Y[p, q] - Y[j, q]``::

        numerator[p, q]   = sum_j (dD / prod) * dY
        denominator[p, q] = sum_j (dD - (1 + dD / D_ld[p, j]) * dY**2 / D_ld[p, j]) / prod

    Both sums skip ``j == p``. The ``-2 / c`` factor is left to the caller.

    Parameters
    ----------
    D_hd : ndarray of shape (n_samples, n_samples)
        Distances of the original configuration.
    Y : ndarray of shape (n_samples, n_components)
        Current low-dimensional configuration.
    D_ld : ndarray of shape (n_samples, n_samples)
        Distances of ``Y``.

    Returns
    -------
    numerator, denominator : ndarray of shape (n_samples, n_components)
    """
    n = Y.shape[0]
    off_diagonal = ~np.eye(n, dtype=bool)

    # dif[p, j, q] = Y[p, q] - Y[j, q]
    dif = Y[:, None, :] - Y[None, :, :]

    with np.errstate(divide="ignore", invalid="ignore"):
        delta_d = D_hd - D_ld
        prod_d = D_hd * D_ld
        ratio = np.where(off_diagonal, delta_d / prod_d, 0.0)
        inv_prod = np.where(off_diagonal, 1.0 / prod_d, 0.0)
        stretch = np.where(off_diagonal, (1.0 + delta_d / D_ld) / D_ld, 0.0)

    numerator = np.einsum("pj,pjq->pq", ratio, dif)
    denominator = np.einsum(
        "pj,pjq->pq",
        inv_prod,
        delta_d[:, :, None] - stretch[:, :, None] * dif**2,
    )
    return numerator, denominator


def sammon_stress(D_hd, D_ld):
    """Sammon stress of a configuration.

    ``E = 1 / c * sum_{i<j} (D_hd - D_ld)**2 / D_hd`` with ``c`` the sum of
    the original distances. Pairs with a zero original distance are skipped.
    """
    triu_idx = np.triu_indices_from(D_hd, k=1)
    d_hd = D_hd[triu_idx]
    d_ld = D_ld[triu_idx]
    keep = d_hd > 0.0
    c = np.sum(d_hd)
    if c <= 0.0:
        return 0.0
    return float(np.sum((d_hd[keep] - d_ld[keep]) ** 2 / d_hd[keep]) / c)


class SammonMap(TransformerMixin, BaseEstimator):
    """Sammon mapping dimensionality reducer.

    Sammon mapping looks for a low-dimensional configuration whose pairwise
    distances reproduce the original ones, weighting each pair by the inverse
    of its original distance so that small distances are preserved with
    higher relative importance. The stress is minimized by fixed-step
    gradient descent where every coordinate is corrected by the ratio of its
    first to its second partial derivative (Sammon's "magic factor" update).

    Parameters
    ----------
    n_components : int, default=2
        Dimensionality of the target embedding. Fixed at construction.

    alpha : float, default=0.3
        Step-size coefficient. Values outside ``[0.3, 0.4]`` are clamped to
        the nearer bound.

    tol : float, default=1e-6
        Convergence threshold on the sum of squared coordinate changes
        between two successive iterations.

    max_iter : int or None, default=1000
        Maximum number of iterations. ``None`` iterates until convergence,
        which may never happen on degenerate inputs.

    epsilon : float, default=1e-6
        Normalizing constants with a magnitude below this value are shifted
        by it before use.

    denominator_epsilon : float, default=1e-11
        Gradient denominators with a magnitude below this value are shifted
        by it before dividing.

    callback : callable or None, default=None
        Called once per iteration as ``callback(n_iter, diff)``. Returning
        ``True`` stops the run; the result is marked ``"cancelled"``.

    random_state : int, numpy.random.Generator or None, default=None
        Seed of the random initial configuration.

    verbose : int, default=0
        Verbosity level. ``1`` reports the start and end of a run, ``2``
        also reports every iteration.

    Attributes
    ----------
    y_ : VectorSet
        The low-dimensional configuration.

    embedding_ : ndarray of shape (n_samples, n_components)
        The low-dimensional embedding as an array.

    n_iter_ : int
        Number of iterations run.

    converged_ : bool
        Whether the last run stopped because it converged.

    status_ : str
        ``"converged"``, ``"max_iter"`` or ``"cancelled"``.

    diff_ : float
        Sum of squared coordinate changes of the last iteration.

    stress_ : float
        Sammon stress of the embedding.

    normalizing_constant_ : float
        Sum of the pairwise distances of the source configuration, after
        stabilization.

    n_stabilized_ : int
        How many gradient denominators had to be shifted away from zero over
        the whole run. Non-zero counts point at degenerate inputs.

    result_ : MappingResult
        The above bundled in one tuple.

    Examples
    --------
    >>> from sksammon.datasets import make_two_spheres
    >>> from sksammon.decomposition import SammonMap
    >>> X = make_two_spheres(n_samples=64)
    >>> sm = SammonMap(n_components=2, random_state=0)
    >>> sm.fit_transform(X).shape
    (64, 2)
    """

    def __init__(
        self,
        n_components=2,
        alpha=0.3,
        tol=1e-6,
        max_iter=1000,
        epsilon=EPSILON,
        denominator_epsilon=E2,
        callback=None,
        random_state=None,
        verbose=0,
    ):
        if (
            isinstance(n_components, (bool, np.bool_))
            or not isinstance(n_components, (int, np.integer))
            or n_components < 1
        ):
            raise ValueError(
                f"n_components must be a positive integer, got {n_components!r}"
            )
        self._n_components = n_components
        self.alpha = alpha
        self.tol = tol
        self.max_iter = max_iter
        self.epsilon = epsilon
        self.denominator_epsilon = denominator_epsilon
        self.callback = callback
        self.random_state = random_state
        self.verbose = verbose

    @property
    def n_components(self):
        return self._n_components

    @n_components.setter
    def n_components(self, value):
        if value != self._n_components:
            raise AttributeError(
                "n_components is fixed at construction; create a new SammonMap"
            )

    @property
    def new_dimensionality(self):
        return self._n_components

    @property
    def alpha(self):
        return self._alpha

    @alpha.setter
    def alpha(self, val):
        # Out of range values saturate, they are never rejected.
        if val < ALPHA_LOWER_BOUND:
            self._alpha = ALPHA_LOWER_BOUND
        elif val > ALPHA_UPPER_BOUND:
            self._alpha = ALPHA_UPPER_BOUND
        else:
            self._alpha = val

    def get_alpha(self):
        return self.alpha

    def set_alpha(self, val):
        """Set the step size, clamped to ``[0.3, 0.4]``."""
        self.alpha = val
        return self

    def get_y(self):
        check_is_fitted(self, ["y_"])
        return self.y_

    def _check_params(self):
        if self.tol < 0:
            raise ValueError(f"tol must be non-negative, got {self.tol}")
        if self.max_iter is not None and (
            not isinstance(self.max_iter, (int, np.integer)) or self.max_iter < 1
        ):
            raise ValueError(
                f"max_iter must be a positive integer or None, got {self.max_iter!r}"
            )
        if self.epsilon <= 0 or self.denominator_epsilon <= 0:
            raise ValueError(
                "epsilon and denominator_epsilon must be positive, got "
                f"{self.epsilon} and {self.denominator_epsilon}"
            )

    def map(self, x):
        """Map a high-dimensional vector set to ``n_components`` dimensions.

        The points of ``x`` are never modified; only its distance matrix is
        (re)computed.

        Parameters
        ----------
        x : VectorSet
            Source configuration.

        Returns
        -------
        y : VectorSet
            The low-dimensional configuration, also stored as ``y_``.

        Raises
        ------
        EmptySetError
            If ``x`` holds no points.
        DegenerateInputError
            If an update produces non-finite coordinates, which happens when
            ``x`` contains coincident points.
        """
        self._check_params()
        n_points = x.n_points

        x.compute_distance_matrix()
        D_hd = x.distance_matrix
        c, _ = stabilize(x.get_normalizing_constant(), self.epsilon)
        scale = -2.0 / c

        max_range = max(x.get_range(j) for j in range(x.dimensionality))

        if self.verbose:
            print(
                f"Mapping {n_points} points from {x.dimensionality} to "
                f"{self.n_components} dimensions (alpha={self.alpha})"
            )

        y = VectorSet(self.n_components)
        y.populate(n_points, max_range, random_state=self.random_state)
        y.compute_distance_matrix()

        n_iter = 0
        n_stabilized = 0
        delta = np.inf
        status = "max_iter"

        while self.max_iter is None or n_iter < self.max_iter:
            # The whole update reads the frozen y and both distance matrices;
            # y only changes at the commit below.
            Y = y.points
            numerator, denominator = gradient_terms(D_hd, Y, y.distance_matrix)
            denominator, n_patched = stabilize(denominator, self.denominator_epsilon)
            n_stabilized += n_patched

            step = (scale * numerator) / (scale * denominator)
            next_y = VectorSet.from_array(Y - self.alpha * step)
            n_iter += 1

            delta = y.diff(next_y)
            if not np.isfinite(delta):
                n_coincident = int(
                    np.count_nonzero(D_hd[np.triu_indices_from(D_hd, k=1)] == 0.0)
                )
                raise DegenerateInputError(
                    f"Sammon update produced non-finite coordinates at iteration "
                    f"{n_iter}; the source set has {n_coincident} pair(s) of "
                    "coincident points. Remove duplicate points before mapping."
                )
            y.replace_with(next_y)
            y.compute_distance_matrix()

            if self.verbose > 1:
                print(f"  {n_iter} iterations completed, diff = {delta:.3e}")

            if delta < self.tol:
                status = "converged"
                break
            if self.callback is not None and self.callback(n_iter, delta):
                status = "cancelled"
                break

        if status == "max_iter":
            warnings.warn(
                f"Sammon mapping did not converge after {n_iter} iterations "
                f"(diff={delta:.3e}, tol={self.tol}). Consider increasing max_iter.",
                ConvergenceWarning,
            )

        stress = sammon_stress(D_hd, y.distance_matrix)

        if self.verbose:
            print(
                f"Sammon mapping {status} after {n_iter} iterations: "
                f"diff = {delta:.3e}, stress = {stress:.6f}"
            )
            if n_stabilized:
                print(f"  {n_stabilized} near-zero denominators were stabilized")

        self.y_ = y
        self.embedding_ = y.points
        self.n_iter_ = n_iter
        self.status_ = status
        self.converged_ = status == "converged"
        self.diff_ = delta
        self.stress_ = stress
        self.normalizing_constant_ = c
        self.n_stabilized_ = n_stabilized
        self.result_ = MappingResult(
            y=y,
            n_iter=n_iter,
            converged=self.converged_,
            status=status,
            diff=delta,
            stress=stress,
        )
        return y

    def fit(self, X, y=None):
        """Fit the Sammon mapping on an array of samples.

        Parameters
        ----------
        X : array-like, shape (n_samples, n_features)
            Training data.

        y : Ignored
            Not used, present for API consistency.

        Returns
        -------
        self : object
            Returns the instance itself.
        """
        X = validate_data(self, X, reset=True, dtype=np.float64)
        self.X_ = X.copy()
        self.map(VectorSet.from_array(X))
        return self

    def fit_transform(self, X, y=None):
        """Fit the model and return the embedding.

        Parameters
        ----------
        X : array-like, shape (n_samples, n_features)
            Training data.

        y : Ignored
            Not used, present for API consistency.

        Returns
        -------
        X_new : array, shape (n_samples, n_components)
            Embedded coordinates.
        """
        self.fit(X, y)
        return self.embedding_

    def transform(self, X):
        """Return the embedding of samples seen during ``fit``.

        Out-of-sample projection is not supported.

        Raises
        ------
        ValueError
            If a row of ``X`` matches no training sample.
        """
        check_is_fitted(self, ["embedding_", "X_"])
        X = validate_data(self, X, reset=False)

        indices = []
        for row in X:
            matches = np.all(np.isclose(self.X_, row, rtol=1e-8, atol=1e-12), axis=1)
            if not np.any(matches):
                raise ValueError(
                    "SammonMap.transform only supports in-sample rows; "
                    f"row {len(indices)} matches no training sample. "
                    "Out-of-sample projection is not implemented."
                )
            indices.append(int(np.argmax(matches)))

        return self.embedding_[indices]

    def score(self, X, y=None):
        """Return the negative stress of the fitted embedding."""
        check_is_fitted(self, ["stress_"])
        X = validate_data(self, X, reset=False)
        return -self.stress_
