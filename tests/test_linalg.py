"""
Covariance utilities and filter configuration.
"""

import numpy as np
import pytest

from sigma_filtering.common.linalg import (
    factorize_innovation,
    is_positive_semidefinite,
    kalman_gain,
    matrix_square_root,
    regularize_covariance,
    statistical_linearization,
    symmetrize,
)
from sigma_filtering.config import FilterConfig
from sigma_filtering.exceptions import ConfigurationError, InvalidCovariance, UpdateSingularity

from reference import random_covariance


class TestFilterConfig:
    """Configuration defaults and validation"""

    def test_default_config(self):
        config = FilterConfig()

        assert config.kappa is None
        assert config.symmetrize is True
        assert config.regularize is False
        assert config.min_eigenvalue == 1e-12
        assert config.max_condition_number == 1e12

    def test_custom_config(self):
        config = FilterConfig(kappa=0.5, regularize=True, min_eigenvalue=1e-9)

        assert config.kappa == 0.5
        assert config.regularize is True
        assert config.min_eigenvalue == 1e-9

    @pytest.mark.parametrize("options", [
        {'min_eigenvalue': -1.0},
        {'max_condition_number': 1.0},
        {'max_condition_number': 0.5},
    ])
    def test_invalid_config(self, options):
        with pytest.raises(ConfigurationError):
            FilterConfig(**options)


class TestSquareRoot:
    """Cholesky with eigen fallback"""

    def test_positive_definite_uses_cholesky(self, rng):
        P = random_covariance(rng, 4)
        L = matrix_square_root(P)

        np.testing.assert_allclose(L @ L.T, P, atol=1e-12)
        # Lower triangular Cholesky factor
        np.testing.assert_allclose(np.triu(L, 1), 0.0)

    def test_singular_psd_falls_back_to_eigen_root(self):
        P = np.array([[1.0, 1.0], [1.0, 1.0]])
        L = matrix_square_root(P)

        assert np.all(np.isfinite(L))
        np.testing.assert_allclose(L @ L.T, P, atol=1e-12)

    def test_zero_matrix(self):
        L = matrix_square_root(np.zeros((3, 3)))
        np.testing.assert_allclose(L, 0.0)

    def test_empty_matrix(self):
        assert matrix_square_root(np.zeros((0, 0))).shape == (0, 0)

    @pytest.mark.parametrize("P", [
        np.array([[1.0, 0.0], [0.0, -1.0]]),
        np.array([[1.0, np.nan], [np.nan, 1.0]]),
        np.array([[1.0, 0.5], [0.0, 1.0]]),
        np.ones((2, 3)),
    ])
    def test_invalid_covariance_raises(self, P):
        with pytest.raises(InvalidCovariance):
            matrix_square_root(P)

    def test_invalid_covariance_is_value_error(self):
        with pytest.raises(ValueError):
            matrix_square_root(-np.eye(2))


class TestCovarianceHelpers:

    def test_symmetrize(self):
        P = np.array([[1.0, 0.2], [0.4, 2.0]])
        S = symmetrize(P)

        np.testing.assert_allclose(S, S.T)
        np.testing.assert_allclose(S[0, 1], 0.3)

    def test_is_positive_semidefinite(self, rng):
        assert is_positive_semidefinite(random_covariance(rng, 3))
        assert is_positive_semidefinite(np.zeros((2, 2)))
        assert not is_positive_semidefinite(np.diag([1.0, -0.5]))
        assert not is_positive_semidefinite(np.array([[1.0, np.inf], [np.inf, 1.0]]))

    def test_regularize_clips_eigenvalues(self):
        P = np.diag([2.0, -1e-6, 0.0])
        R = regularize_covariance(P, min_eigenvalue=1e-4)

        eigval = np.linalg.eigvalsh(R)
        assert eigval.min() >= 1e-4 - 1e-15
        np.testing.assert_allclose(np.sort(eigval), [1e-4, 1e-4, 2.0], atol=1e-12)

    def test_regularize_leaves_well_conditioned_matrix(self, rng):
        P = random_covariance(rng, 3)
        np.testing.assert_allclose(regularize_covariance(P), P, atol=1e-12)


class TestGain:

    def test_kalman_gain_matches_solve(self, rng):
        S = random_covariance(rng, 3)
        cross = rng.standard_normal((5, 3))

        K = kalman_gain(cross, S)
        np.testing.assert_allclose(K, cross @ np.linalg.inv(S), atol=1e-10)

    def test_ill_conditioned_innovation_raises(self):
        with pytest.raises(UpdateSingularity):
            factorize_innovation(np.diag([1.0, 1e-14]))

    def test_condition_limit_is_configurable(self):
        S = np.diag([1.0, 1e-3])
        factorize_innovation(S, max_condition_number=1e4)
        with pytest.raises(UpdateSingularity):
            factorize_innovation(S, max_condition_number=1e2)

    def test_indefinite_innovation_raises(self):
        with pytest.raises(UpdateSingularity):
            factorize_innovation(np.diag([1.0, -1.0]))

    def test_non_finite_innovation_raises(self):
        with pytest.raises(ArithmeticError):
            factorize_innovation(np.array([[np.nan]]))

    def test_statistical_linearization_recovers_linear_map(self, rng):
        P = random_covariance(rng, 3)
        A = rng.standard_normal((2, 3))

        J = statistical_linearization(P, P @ A.T)
        np.testing.assert_allclose(J, A, atol=1e-10)

    def test_statistical_linearization_singular_input(self):
        P = np.diag([1.0, 0.0])
        A = np.array([[2.0, 0.0]])

        J = statistical_linearization(P, P @ A.T)
        assert np.all(np.isfinite(J))
        np.testing.assert_allclose(J @ P, A @ P, atol=1e-12)
