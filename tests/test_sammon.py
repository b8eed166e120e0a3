import numpy as np
import pytest
from scipy.spatial.distance import pdist, squareform
from sklearn.base import clone
from sklearn.exceptions import ConvergenceWarning

from sksammon import VectorSet
from sksammon.datasets import make_sphere, make_tetrahedron, make_two_clusters
from sksammon.decomposition import SammonMap
from sksammon.decomposition._sammon import (
    E2,
    EPSILON,
    gradient_terms,
    sammon_stress,
    stabilize,
)
from sksammon.exceptions import DegenerateInputError, EmptySetError


@pytest.fixture
def clusters():
    return make_two_clusters(n_per_cluster=20, radius=1.0, random_state=0)


class TestConfiguration:
    @pytest.mark.parametrize(
        "value, expected", [(0.1, 0.3), (0.9, 0.4), (0.35, 0.35), (0.3, 0.3), (0.4, 0.4)]
    )
    def test_alpha_clamping(self, value, expected):
        sm = SammonMap()
        sm.set_alpha(value)

        assert sm.get_alpha() == expected
        assert sm.alpha == expected

    def test_alpha_clamped_at_construction(self):
        assert SammonMap(alpha=5.0).alpha == 0.4
        assert SammonMap(alpha=-1.0).alpha == 0.3

    def test_set_params_clamps_alpha(self):
        sm = SammonMap().set_params(alpha=0.1)

        assert sm.get_params()["alpha"] == 0.3

    @pytest.mark.parametrize("n_components", [0, -2, 1.5, None])
    def test_invalid_n_components(self, n_components):
        with pytest.raises(ValueError, match="n_components must be a positive"):
            SammonMap(n_components=n_components)

    def test_n_components_is_immutable(self):
        sm = SammonMap(n_components=3)

        with pytest.raises(AttributeError):
            sm.n_components = 2
        assert sm.new_dimensionality == 3

    def test_clone(self):
        sm = SammonMap(n_components=3, alpha=0.35, max_iter=50, random_state=1)
        params = clone(sm).get_params()

        assert params["n_components"] == 3
        assert params["alpha"] == 0.35
        assert params["max_iter"] == 50

    @pytest.mark.parametrize(
        "params, match",
        [
            ({"tol": -1.0}, "tol must be non-negative"),
            ({"max_iter": 0}, "max_iter must be a positive integer"),
            ({"epsilon": 0.0}, "must be positive"),
        ],
    )
    def test_invalid_params(self, params, match, clusters):
        X, _ = clusters
        sm = SammonMap(**params)

        with pytest.raises(ValueError, match=match):
            sm.fit(X)


class TestSammonMap:
    def test_two_clusters(self, clusters):
        X, labels = clusters
        sm = SammonMap(n_components=2, alpha=0.3, max_iter=5000, random_state=0)

        y = sm.map(VectorSet.from_array(X))

        assert sm.converged_
        assert sm.status_ == "converged"
        assert sm.n_iter_ <= 5000
        assert sm.diff_ < sm.tol
        assert y.dimensionality == 2
        assert len(y) == 40
        assert sm.n_stabilized_ == 0

        D = squareform(pdist(sm.embedding_))
        same = labels[:, None] == labels[None, :]
        off_diagonal = ~np.eye(len(labels), dtype=bool)
        within = D[same & off_diagonal].mean()
        across = D[~same].mean()
        assert across > within

    def test_sphere_terminates(self):
        X = make_sphere(n_samples=50, radius=1.0)
        sm = SammonMap(n_components=2, max_iter=2000, random_state=0)

        sm.fit(X)

        assert sm.converged_
        assert sm.n_iter_ <= 2000
        assert sm.n_stabilized_ == 0
        assert sm.embedding_.shape == (50, 2)
        assert np.isfinite(sm.embedding_).all()

    def test_tetrahedron_regression(self):
        X = make_tetrahedron(edge=1.0)

        sm1 = SammonMap(n_components=2, max_iter=5000, random_state=42)
        sm2 = SammonMap(n_components=2, max_iter=5000, random_state=42)
        sm1.fit(X)
        sm2.fit(X)

        np.testing.assert_allclose(sm1.embedding_, sm2.embedding_, atol=1e-4)

        # Converged configuration recorded from a seeded reference run. The
        # pairwise distances fix the layout up to rotation and reflection:
        # a near-square with sides ~0.854 and diagonals ~1.207.
        expected_distances = np.array([0.8538, 1.2092, 0.8533, 0.8539, 1.2051, 0.8532])
        assert sm1.converged_
        assert sm1.n_iter_ == 21
        np.testing.assert_allclose(
            pdist(sm1.embedding_), expected_distances, atol=1e-4
        )
        np.testing.assert_allclose(sm1.stress_, 0.0286, atol=1e-4)

    def test_source_is_not_modified(self, clusters):
        X, _ = clusters
        x = VectorSet.from_array(X)
        before = x.points

        SammonMap(max_iter=20, tol=0.0, random_state=0).map(x)

        np.testing.assert_array_equal(x.points, before)

    def test_max_iter_exhausted(self, clusters):
        X, _ = clusters
        sm = SammonMap(max_iter=3, tol=0.0, random_state=0)

        with pytest.warns(ConvergenceWarning, match="did not converge"):
            sm.fit(X)

        assert sm.status_ == "max_iter"
        assert not sm.converged_
        assert sm.n_iter_ == 3
        assert sm.result_.status == "max_iter"

    def test_callback_cancels(self, clusters):
        X, _ = clusters
        calls = []

        def stop_after_two(n_iter, diff):
            calls.append((n_iter, diff))
            return n_iter >= 2

        sm = SammonMap(tol=0.0, callback=stop_after_two, random_state=0)
        sm.fit(X)

        assert sm.status_ == "cancelled"
        assert sm.n_iter_ == 2
        assert [n for n, _ in calls] == [1, 2]

    def test_stress_decreases(self, clusters):
        X, _ = clusters
        D_hd = squareform(pdist(X))

        sm = SammonMap(max_iter=200, random_state=0)
        sm.fit(X)

        y0 = VectorSet(2)
        y0.populate(len(X), np.ptp(X, axis=0).max(), random_state=0)
        initial_stress = sammon_stress(D_hd, np.array(y0.compute_distance_matrix()))

        assert sm.stress_ < initial_stress
        assert -sm.score(X) == sm.stress_

    def test_result_tuple(self, clusters):
        X, _ = clusters
        sm = SammonMap(max_iter=500, random_state=0)
        y = sm.map(VectorSet.from_array(X))

        assert sm.result_.y is y
        assert sm.get_y() is y
        assert sm.result_.n_iter == sm.n_iter_
        assert sm.result_.stress == sm.stress_
        np.testing.assert_array_equal(sm.embedding_, y.points)
        np.testing.assert_allclose(
            sm.normalizing_constant_, np.sum(pdist(X)), rtol=1e-12
        )

    def test_coincident_points(self, clusters):
        X, _ = clusters
        X = np.vstack([X, X[:1]])

        with pytest.raises(DegenerateInputError, match=r"1 pair\(s\) of coincident"):
            SammonMap(max_iter=50, random_state=0).fit(X)

    def test_coincident_points_unbounded(self, clusters):
        X, _ = clusters
        X = np.vstack([X, X[:1]])
        sm = SammonMap(max_iter=None, random_state=0)

        with pytest.raises(DegenerateInputError):
            sm.map(VectorSet.from_array(X))
        assert not hasattr(sm, "y_")

    def test_empty_source(self):
        with pytest.raises(EmptySetError):
            SammonMap().map(VectorSet(3))

    def test_single_point(self):
        sm = SammonMap(random_state=0)
        y = sm.map(VectorSet.from_array([[1.0, 2.0, 3.0]]))

        assert sm.converged_
        assert sm.n_iter_ == 1
        np.testing.assert_array_equal(y.points, [[0.0, 0.0]])

    @pytest.mark.parametrize("n_components", [1, 2, 3])
    def test_n_components(self, clusters, n_components):
        X, _ = clusters
        sm = SammonMap(n_components=n_components, max_iter=20, tol=0.0, random_state=0)
        with pytest.warns(ConvergenceWarning):
            sm.fit(X)

        assert sm.embedding_.shape == (X.shape[0], n_components)

    def test_fit_transform_and_transform(self, clusters):
        X, _ = clusters
        sm = SammonMap(max_iter=50, random_state=0)

        embedding = sm.fit_transform(X)

        np.testing.assert_allclose(sm.transform(X), embedding)
        np.testing.assert_allclose(sm.transform(X[5:10]), embedding[5:10])

    def test_transform_out_of_sample(self, clusters):
        X, _ = clusters
        sm = SammonMap(max_iter=50, random_state=0).fit(X)

        with pytest.raises(ValueError, match="matches no training sample"):
            sm.transform(X[5:6] + 100.0)

        # one unseen row is enough to reject the whole batch
        with pytest.raises(ValueError, match="row 1 matches no training sample"):
            sm.transform(np.vstack([X[3], X[5] + 100.0]))

    def test_verbose(self, clusters, capsys):
        X, _ = clusters
        SammonMap(max_iter=5, tol=0.0, verbose=2, random_state=0).fit(X)

        out = capsys.readouterr().out
        assert "Mapping 40 points from 3 to 2 dimensions" in out
        assert "5 iterations completed" in out


class TestHelperFunctions:
    def test_stabilize_scalar(self):
        value, n_patched = stabilize(0.0, EPSILON)
        assert value == EPSILON
        assert n_patched == 1

        value, n_patched = stabilize(2.0, EPSILON)
        assert value == 2.0
        assert n_patched == 0

    def test_stabilize_array(self):
        values = np.array([0.0, -1e-12, 1.0, -3.0])
        stabilized, n_patched = stabilize(values, E2)

        assert n_patched == 2
        np.testing.assert_array_equal(stabilized[2:], [1.0, -3.0])
        assert np.all(np.abs(stabilized[:2]) > 0)
        # input is left untouched
        assert values[0] == 0.0

    def test_gradient_terms_match_loops(self):
        rng = np.random.default_rng(3)
        X = rng.standard_normal((8, 5))
        Y = rng.standard_normal((8, 2))
        D_hd = squareform(pdist(X))
        D_ld = squareform(pdist(Y))

        numerator, denominator = gradient_terms(D_hd, Y, D_ld)

        for p in range(8):
            for q in range(2):
                num = 0.0
                den = 0.0
                for j in range(8):
                    if j == p:
                        continue
                    delta_d = D_hd[p, j] - D_ld[p, j]
                    prod_d = D_hd[p, j] * D_ld[p, j]
                    delta_y = Y[p, q] - Y[j, q]
                    num += (delta_d / prod_d) * delta_y
                    den += (
                        delta_d - (1 + delta_d / D_ld[p, j]) * delta_y**2 / D_ld[p, j]
                    ) / prod_d
                np.testing.assert_allclose(numerator[p, q], num, rtol=1e-10)
                np.testing.assert_allclose(denominator[p, q], den, rtol=1e-10)

    def test_degenerate_axis_triggers_stabilization(self):
        # Collinear points embedded exactly: the second axis carries no
        # information, so its denominators vanish.
        Y = np.column_stack([np.arange(5, dtype=float), np.zeros(5)])
        D = squareform(pdist(Y))

        numerator, denominator = gradient_terms(D, Y, D)
        _, n_patched = stabilize(denominator, E2)

        np.testing.assert_allclose(numerator, 0.0, atol=1e-12)
        np.testing.assert_array_equal(denominator[:, 1], 0.0)
        assert n_patched == 5

    def test_sammon_stress(self):
        X = make_tetrahedron()
        D = squareform(pdist(X))

        assert sammon_stress(D, D) == 0.0
        assert sammon_stress(D, 2 * D) > 0.0
