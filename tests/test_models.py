"""
Process and observation models.
"""

import numpy as np
import pytest
from scipy.stats import multivariate_normal

from sigma_filtering.distributions import GaussianDistribution
from sigma_filtering.exceptions import ConfigurationError
from sigma_filtering.filters import SigmaPointKalmanFilter
from sigma_filtering.models import (
    DampedWienerProcessModel,
    LinearObservationModel,
    LinearPartitionObservationModel,
    LinearProcessModel,
    ObservationModel,
    UniformObservationModel,
)


class TestDampedWiener:
    """Exact discretization and its limits"""

    def test_undamped_is_random_walk(self):
        model = DampedWienerProcessModel(2, damping=0.0)
        x, u = np.array([1.0, -1.0]), np.array([2.0, 0.5])

        np.testing.assert_allclose(model.expected_state(x, u, 0.5), x + 0.5 * u)
        assert model.noise_scale(0.5) == pytest.approx(0.5)

    def test_tiny_damping_approaches_random_walk(self):
        model = DampedWienerProcessModel(1, damping=1e-12)
        x, u = np.array([1.0]), np.array([2.0])

        np.testing.assert_allclose(model.expected_state(x, u, 0.5), x + 0.5 * u, rtol=1e-9)
        assert model.noise_scale(0.5) == pytest.approx(0.5, rel=1e-9)

    def test_long_horizon_reaches_equilibrium(self):
        model = DampedWienerProcessModel(1, damping=2.0)
        x, u = np.array([10.0]), np.array([3.0])

        # mean -> u / d, variance factor -> 1 / (2 d)
        np.testing.assert_allclose(model.expected_state(x, u, 1e3), u / 2.0, atol=1e-12)
        assert model.noise_scale(1e3) == pytest.approx(0.25)

    def test_missing_control_is_zero(self):
        model = DampedWienerProcessModel(1, damping=1.0)
        np.testing.assert_allclose(model.expected_state(np.array([2.0]), None, 1.0),
                                   2.0 * np.exp(-1.0))

    def test_filter_predict_matches_closed_form(self):
        d, dt = 0.8, 0.3
        Q = np.diag([0.5, 0.2])
        model = DampedWienerProcessModel(2, damping=d, noise_covariance=Q)
        state = GaussianDistribution(np.array([1.0, 2.0]), np.array([[1.0, 0.2], [0.2, 0.5]]))
        u = np.array([0.4, -0.4])

        decay = np.exp(-d * dt)
        expected_mean = decay * state.mean + (1 - decay) / d * u
        expected_cov = decay**2 * state.covariance + (1 - np.exp(-2 * d * dt)) / (2 * d) * Q

        SigmaPointKalmanFilter(model).predict(state, dt=dt, control=u)

        np.testing.assert_allclose(state.mean, expected_mean, atol=1e-12)
        np.testing.assert_allclose(state.covariance, expected_cov, atol=1e-12)

    @pytest.mark.parametrize("options", [
        {'dimension': 0},
        {'dimension': 2, 'damping': -1.0},
        {'dimension': 2, 'noise_covariance': np.eye(3)},
    ])
    def test_invalid_parameters(self, options):
        with pytest.raises(ConfigurationError):
            DampedWienerProcessModel(**options)

    @pytest.mark.parametrize("damping", [0.0, 1.5])
    def test_negative_time_step(self, damping):
        model = DampedWienerProcessModel(1, damping=damping)

        with pytest.raises(ConfigurationError):
            model.noise_scale(-0.1)
        with pytest.raises(ConfigurationError):
            model.transition(np.zeros(1), np.zeros(1), np.ones(1), -0.1)

    def test_filter_rejects_negative_time_step(self):
        state = GaussianDistribution(np.array([1.0]), np.eye(1))
        spkf = SigmaPointKalmanFilter(DampedWienerProcessModel(1, damping=0.5))

        with pytest.raises(ConfigurationError):
            spkf.predict(state, dt=-1.0)

        np.testing.assert_allclose(state.mean, [1.0])
        np.testing.assert_allclose(state.covariance, np.eye(1))


class TestLinearModels:

    def test_process_model_dimensions(self):
        model = LinearProcessModel(np.eye(3), np.eye(3), input_matrix=np.ones((3, 2)))

        assert model.state_dimension == 3
        assert model.control_dimension == 2
        assert model.noise_dimension == 3

    def test_random_walk_ignores_dt(self):
        model = LinearProcessModel.random_walk(2, np.eye(2))
        x = np.array([1.0, 2.0])

        np.testing.assert_allclose(model.transition(x, np.zeros(0), np.zeros(2), 10.0), x)

    def test_noise_square_root(self):
        Q = np.array([[2.0, 0.5], [0.5, 1.0]])
        L = LinearProcessModel(np.eye(2), Q).noise_square_root

        np.testing.assert_allclose(L @ L.T, Q, atol=1e-12)

    def test_observation_log_probability(self):
        H = np.array([[1.0, 0.0], [1.0, 1.0]])
        R = np.diag([0.5, 0.2])
        model = LinearObservationModel(H, R)
        x, y = np.array([1.0, 2.0]), np.array([1.2, 2.5])

        assert model.log_probability(y, x) == pytest.approx(
            multivariate_normal(H @ x, R).logpdf(y), rel=1e-10)

    def test_partition_observation(self):
        model = LinearPartitionObservationModel(np.array([[1.0, 0.0, 0.0]]), np.array([[1.0]]),
                                                np.array([[0.1]]))

        assert model.cohesive_dimension == 3
        assert model.partition_dimension == 1
        assert model.observation_dimension == 1
        np.testing.assert_allclose(
            model.observe(np.array([2.0, 5.0, 5.0]), np.array([0.5]), np.array([0.1])), [2.6])

    @pytest.mark.parametrize("build", [
        lambda: LinearProcessModel(np.ones((2, 3)), np.eye(2)),
        lambda: LinearProcessModel(np.eye(2), np.eye(3)),
        lambda: LinearProcessModel(np.eye(2), np.eye(2), input_matrix=np.ones((3, 1))),
        lambda: LinearObservationModel(np.eye(2), np.eye(3)),
        lambda: LinearPartitionObservationModel(np.eye(2), np.eye(3), np.eye(2)),
    ])
    def test_shape_validation(self, build):
        with pytest.raises(ConfigurationError):
            build()


class TestUniformObservation:
    """State-independent measurement on [min_value, max_value]"""

    @pytest.fixture
    def model(self):
        return UniformObservationModel(-1.0, 3.0, state_dimension=2)

    def test_dimensions(self, model):
        assert model.state_dimension == 2
        assert model.observation_dimension == 1
        assert model.noise_dimension == 1

    def test_noise_maps_onto_interval(self, model):
        state = np.array([5.0, -5.0])

        np.testing.assert_allclose(model.observe(state, np.zeros(1)), [1.0])
        assert model.observe(state, np.array([-8.0]))[0] == pytest.approx(-1.0, abs=1e-9)
        assert model.observe(state, np.array([8.0]))[0] == pytest.approx(3.0, abs=1e-9)

    def test_mapped_draws_are_uniform(self, model, rng):
        draws = np.array([model.observe(np.zeros(2), w) for w in rng.standard_normal((4000, 1))])

        assert draws.min() >= -1.0 and draws.max() <= 3.0
        assert draws.mean() == pytest.approx(1.0, abs=0.1)
        assert draws.var() == pytest.approx(16.0 / 12.0, rel=0.1)

    def test_density(self, model):
        state = np.zeros(2)

        assert model.probability(np.array([0.0]), state) == pytest.approx(0.25)
        assert model.log_probability(np.array([2.5]), state) == pytest.approx(-np.log(4.0))
        assert model.probability(np.array([3.5]), state) == 0.0
        assert model.log_probability(np.array([-1.5]), state) == -np.inf

    def test_update_leaves_state_unchanged(self, model):
        state = GaussianDistribution(np.array([0.5, -0.5]), np.array([[1.0, 0.3], [0.3, 2.0]]))
        before_cov = state.covariance.copy()

        result = SigmaPointKalmanFilter(observation_model=model).update(state, np.array([2.0]))

        assert result.predicted_observation[0] == pytest.approx(1.0)
        np.testing.assert_allclose(state.mean, [0.5, -0.5], atol=1e-12)
        np.testing.assert_allclose(state.covariance, before_cov, atol=1e-12)

    @pytest.mark.parametrize("bounds", [(1.0, 1.0), (2.0, -2.0)])
    def test_invalid_bounds(self, bounds):
        with pytest.raises(ConfigurationError):
            UniformObservationModel(*bounds)


class TestObservationInterface:

    def test_log_probability_is_optional(self):
        class RangeModel(ObservationModel):
            state_dimension = 2
            observation_dimension = 1
            noise_covariance = np.array([[0.1]])

            def observe(self, state, noise):
                return np.array([np.hypot(*state)]) + noise

        model = RangeModel()

        np.testing.assert_allclose(model.observe(np.array([3.0, 4.0]), np.zeros(1)), [5.0])
        with pytest.raises(NotImplementedError):
            model.log_probability(np.array([5.0]), np.array([3.0, 4.0]))
