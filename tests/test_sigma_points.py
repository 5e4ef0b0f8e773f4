"""
Sigma-point generation, augmentation and recombination.
"""

import numpy as np
import pytest

from sigma_filtering.distributions import GaussianDistribution
from sigma_filtering.exceptions import ConfigurationError
from sigma_filtering.filters.sigma_points import (
    JulierSigmaPoints,
    MerweScaledSigmaPoints,
    SigmaPointSet,
    augment,
    zero_mean_noise,
)

from reference import random_covariance


class TestMomentReproduction:
    """Weighted moments of the points equal the source moments"""

    @pytest.mark.parametrize("n", [1, 2, 3, 6])
    @pytest.mark.parametrize("kappa", [None, 0.5, 1.0, 2.0])
    def test_julier(self, rng, n, kappa):
        mean = rng.standard_normal(n)
        P = random_covariance(rng, n)
        sigmas = JulierSigmaPoints(kappa).sigma_points(GaussianDistribution(mean, P))

        assert len(sigmas) == 2 * n + 1
        assert sigmas.weights_mean.sum() == pytest.approx(1.0)
        np.testing.assert_allclose(sigmas.points[0], mean)
        np.testing.assert_allclose(sigmas.mean(), mean, atol=1e-10)
        np.testing.assert_allclose(sigmas.covariance(), P, atol=1e-10)

    @pytest.mark.parametrize("alpha,beta,kappa", [(1.0, 2.0, None), (0.5, 2.0, 1.0), (1e-3, 2.0, 0.0)])
    def test_merwe(self, rng, alpha, beta, kappa):
        mean = rng.standard_normal(3)
        P = random_covariance(rng, 3)
        sigmas = MerweScaledSigmaPoints(alpha, beta, kappa).sigma_points(GaussianDistribution(mean, P))

        assert sigmas.weights_mean.sum() == pytest.approx(1.0)
        np.testing.assert_allclose(sigmas.mean(), mean, atol=1e-8)
        np.testing.assert_allclose(sigmas.covariance(), P, atol=1e-8)

    def test_singular_covariance(self):
        P = np.array([[2.0, 2.0], [2.0, 2.0]])
        sigmas = JulierSigmaPoints().sigma_points(GaussianDistribution(np.zeros(2), P))

        np.testing.assert_allclose(sigmas.covariance(), P, atol=1e-12)

    def test_identity_propagation(self, rng):
        mean = rng.standard_normal(4)
        P = random_covariance(rng, 4)
        sigmas = JulierSigmaPoints(1.0).sigma_points(GaussianDistribution(mean, P))

        propagated = sigmas.transform(lambda x: x)

        np.testing.assert_allclose(propagated.mean(), mean, atol=1e-12)
        np.testing.assert_allclose(propagated.covariance(), P, atol=1e-12)
        np.testing.assert_allclose(sigmas.cross_covariance(propagated), P, atol=1e-12)


class TestWeights:

    def test_julier_weights(self):
        Wm, Wc = JulierSigmaPoints(kappa=2.0).weights(3)

        assert Wm[0] == pytest.approx(2.0 / 5.0)
        np.testing.assert_allclose(Wm[1:], 1.0 / 10.0)
        np.testing.assert_allclose(Wc, Wm)

    def test_default_kappa(self):
        Wm, _ = JulierSigmaPoints().weights(2)

        # kappa = 3 - n
        assert Wm[0] == pytest.approx(1.0 / 3.0)
        np.testing.assert_allclose(Wm[1:], 1.0 / 6.0)

    def test_merwe_covariance_center_weight(self):
        points = MerweScaledSigmaPoints(alpha=0.5, beta=2.0, kappa=0.0)
        Wm, Wc = points.weights(2)

        assert Wc[0] == pytest.approx(Wm[0] + 1.0 - 0.25 + 2.0)
        np.testing.assert_allclose(Wc[1:], Wm[1:])

    def test_num_sigmas(self):
        assert JulierSigmaPoints().num_sigmas(5) == 11

    @pytest.mark.parametrize("kappa", [-2.0, -3.0])
    def test_non_positive_spread_rejected(self, kappa):
        with pytest.raises(ConfigurationError):
            JulierSigmaPoints(kappa).weights(2)

    def test_invalid_alpha(self):
        with pytest.raises(ConfigurationError):
            MerweScaledSigmaPoints(alpha=0.0)


class TestAugmentation:
    """State first, then noise, block-diagonal"""

    def test_augment_order_and_blocks(self):
        state = GaussianDistribution(np.array([1.0, 2.0]), np.diag([1.0, 4.0]))
        noise = zero_mean_noise(np.array([[9.0]]))

        joint = augment(state, noise)

        np.testing.assert_allclose(joint.mean, [1.0, 2.0, 0.0])
        np.testing.assert_allclose(joint.covariance, np.diag([1.0, 4.0, 9.0]))

    def test_augment_skips_empty_components(self):
        state = GaussianDistribution(np.zeros(2))
        joint = augment(state, zero_mean_noise(np.zeros((0, 0))))

        assert joint.dimension == 2

    def test_split_recovers_components(self, rng):
        P = random_covariance(rng, 2)
        state = GaussianDistribution(np.array([1.0, -1.0]), P)
        noise = zero_mean_noise(np.array([[0.5]]))

        sigmas = JulierSigmaPoints().sigma_points(augment(state, noise))
        state_part, noise_part = sigmas.split([2, 1])

        np.testing.assert_allclose(state_part.covariance(), P, atol=1e-12)
        np.testing.assert_allclose(noise_part.covariance(), [[0.5]], atol=1e-12)
        np.testing.assert_allclose(state_part.cross_covariance(noise_part), 0.0, atol=1e-12)

    def test_split_sizes_must_add_up(self):
        sigmas = JulierSigmaPoints().sigma_points(GaussianDistribution(np.zeros(3)))
        with pytest.raises(ConfigurationError):
            sigmas.split([1, 1])

    def test_mismatched_weights(self):
        with pytest.raises(ConfigurationError):
            SigmaPointSet(np.zeros((3, 2)), np.ones(3) / 3, np.ones(2) / 2)
