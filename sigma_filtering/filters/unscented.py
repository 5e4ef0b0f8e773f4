"""
Sigma-point (unscented) Kalman filter.

A generalized filter that works with any process model f(x, u, w, dt) and
observation model h(x, v), without requiring Jacobians. Noise enters the
nonlinear functions through augmentation: the state is concatenated with
the noise distribution (state first, then noise), sigma points are drawn
over the joint space and split back apart before each function call.

The filter is stateless: predict() and update() transform the
GaussianDistribution they are given, in place.
"""

import logging
from typing import NamedTuple

import numpy as np

from ..common.linalg import is_positive_semidefinite, kalman_gain, regularize_covariance, symmetrize
from ..config import FilterConfig
from ..distributions.gaussian import GaussianDistribution
from ..exceptions import ConfigurationError, InvalidCovariance
from .sigma_points import JulierSigmaPoints, SigmaPointSet, augment, zero_mean_noise

logger = logging.getLogger(__name__)


class UpdateResult(NamedTuple):
    """
    Innovation statistics of one measurement update.

    Attributes
    ----------
    predicted_observation : np.ndarray
        Predicted observation mean (m,)
    innovation : np.ndarray
        Observation minus predicted observation (m,)
    innovation_covariance : np.ndarray
        Innovation covariance (m, m)
    log_likelihood : float
        Log-density of the observation under N(predicted, innovation_cov)
    """
    predicted_observation: np.ndarray
    innovation: np.ndarray
    innovation_covariance: np.ndarray
    log_likelihood: float


def propagate(fn, *groups):
    """
    Apply fn row-wise across split sigma-point groups.

    Parameters
    ----------
    fn : callable
        Called as fn(row_of_group_0, row_of_group_1, ...)
    *groups : SigmaPointSet
        Groups of equal length sharing weights

    Returns
    -------
    SigmaPointSet
        Propagated points with the groups' weights
    """
    rows = zip(*[g.points for g in groups])
    propagated = np.array([np.atleast_1d(np.asarray(fn(*row), dtype=float)) for row in rows])
    return SigmaPointSet(propagated, groups[0].weights_mean, groups[0].weights_cov)


def unscented_predict(distribution, process_model, points, control, dt):
    """
    Unscented transform of a distribution through a process model.

    Parameters
    ----------
    distribution : GaussianDistribution
        Current state distribution (n,)
    process_model : ProcessModel
        Transition f(x, u, w, dt)
    points : JulierSigmaPoints or MerweScaledSigmaPoints
        Sigma-point generator
    control : np.ndarray
        Control input
    dt : float
        Elapsed time

    Returns
    -------
    mean : np.ndarray
        Predicted mean (n,)
    covariance : np.ndarray
        Predicted covariance (n, n), not yet symmetrized
    cross_covariance : np.ndarray
        Prior/predicted cross covariance (n, n)
    """
    noise = zero_mean_noise(process_model.noise_covariance, process_model.noise_square_root)
    sigmas = points.sigma_points(augment(distribution, noise))
    state_part, noise_part = sigmas.split([distribution.dimension, noise.dimension])

    propagated = propagate(lambda x, w: process_model.transition(x, control, w, dt),
                           state_part, noise_part)

    mean = propagated.mean()
    covariance = propagated.covariance(mean)
    cross_covariance = state_part.cross_covariance(propagated, distribution.mean, mean)
    return mean, covariance, cross_covariance


def unscented_observe(distribution, observation_model, points):
    """
    Unscented transform of a distribution through an observation model.

    Returns
    -------
    observation_mean : np.ndarray
        Predicted observation (m,)
    cov_yy : np.ndarray
        Predicted observation covariance (m, m)
    cov_xy : np.ndarray
        State/observation cross covariance (n, m)
    """
    noise = zero_mean_noise(observation_model.noise_covariance,
                            observation_model.noise_square_root)
    sigmas = points.sigma_points(augment(distribution, noise))
    state_part, noise_part = sigmas.split([distribution.dimension, noise.dimension])

    observed = propagate(observation_model.observe, state_part, noise_part)

    observation_mean = observed.mean()
    cov_yy = observed.covariance(observation_mean)
    cov_xy = state_part.cross_covariance(observed, distribution.mean, observation_mean)
    return observation_mean, cov_yy, cov_xy


class SigmaPointKalmanFilter:
    """
    Sigma-point Kalman filter for nonlinear systems.

    Models are resolved once at construction; every predict/update call
    then transforms the distribution passed in.

    Parameters
    ----------
    process_model : ProcessModel, optional
        Needed for predict()
    observation_model : ObservationModel, optional
        Needed for update()
    points : JulierSigmaPoints or MerweScaledSigmaPoints, optional
        Sigma-point generator. Defaults to JulierSigmaPoints(config.kappa).
    config : FilterConfig, optional
        Numerical settings

    Examples
    --------
    >>> spkf = SigmaPointKalmanFilter(LinearProcessModel(A, Q),
    ...                               LinearObservationModel(H, R))
    >>> state = GaussianDistribution(np.zeros(2), np.eye(2))
    >>> spkf.predict(state, dt=0.1)
    >>> result = spkf.update(state, z)
    """

    def __init__(self, process_model=None, observation_model=None, points=None, config=None):
        self.process_model = process_model
        self.observation_model = observation_model
        self.config = config if config is not None else FilterConfig()
        self.points = points if points is not None else JulierSigmaPoints(self.config.kappa)

    def predict(self, distribution, dt=1.0, control=None):
        """
        Predict step.

        Parameters
        ----------
        distribution : GaussianDistribution
            State distribution, overwritten with the prediction
        dt : float, optional
            Elapsed time
        control : np.ndarray, optional
            Control input (zeros if omitted)

        Raises
        ------
        InvalidCovariance
            If the predicted covariance is not PSD and regularize is off.
            The distribution is left untouched.
        """
        model = self._require(self.process_model, "process model")
        check_dimension(distribution.dimension, model.state_dimension, "process model state")
        control = control_input(control, model.control_dimension)

        mean, covariance, _ = unscented_predict(distribution, model, self.points, control, dt)
        covariance = finalize_covariance(covariance, self.config)

        distribution.mean = mean
        distribution.covariance = covariance
        logger.debug("Predicted %d-dim state with %d sigma points (dt=%.4g)",
                     distribution.dimension,
                     self.points.num_sigmas(distribution.dimension + model.noise_dimension), dt)

    def update(self, distribution, observation):
        """
        Update step.

        The distribution is only modified after the gain has been computed,
        so a failing update leaves the predicted moments in place.

        Parameters
        ----------
        distribution : GaussianDistribution
            Predicted distribution, overwritten with the posterior
        observation : np.ndarray
            Measurement vector (m,)

        Returns
        -------
        UpdateResult
            Innovation statistics

        Raises
        ------
        UpdateSingularity
            If the innovation covariance cannot be inverted reliably.
        """
        model = self._require(self.observation_model, "observation model")
        check_dimension(distribution.dimension, model.state_dimension, "observation model state")
        y = np.atleast_1d(np.asarray(observation, dtype=float))
        check_dimension(y.shape[0], model.observation_dimension, "observation")

        y_mean, cov_yy, cov_xy = unscented_observe(distribution, model, self.points)
        cov_yy = symmetrize(cov_yy)

        K = kalman_gain(cov_xy, cov_yy, self.config.max_condition_number)
        innovation = y - y_mean
        log_likelihood = GaussianDistribution(y_mean, cov_yy).log_probability(y)

        mean = distribution.mean + K @ innovation
        covariance = finalize_covariance(distribution.covariance - K @ cov_yy @ K.T, self.config)

        distribution.mean = mean
        distribution.covariance = covariance
        logger.debug("Updated %d-dim state with %d-dim observation (log-likelihood %.4g)",
                     distribution.dimension, y.shape[0], log_likelihood)

        return UpdateResult(y_mean, innovation, cov_yy, log_likelihood)

    def predict_and_update(self, distribution, observation, dt=1.0, control=None):
        """Run predict() then update(); returns the UpdateResult."""
        self.predict(distribution, dt, control)
        return self.update(distribution, observation)

    def _require(self, model, name):
        if model is None:
            raise ConfigurationError(f"This filter was constructed without a {name}")
        return model


def check_dimension(actual, expected, what):
    if actual != expected:
        raise ConfigurationError(
            f"{what} dimension mismatch: expected {expected}, got {actual}")


def control_input(control, dimension):
    """Control vector of the model's size; zeros when omitted."""
    if control is None:
        return np.zeros(dimension)
    control = np.atleast_1d(np.asarray(control, dtype=float))
    check_dimension(control.shape[0], dimension, "control")
    return control


def finalize_covariance(covariance, config):
    """
    Apply the configured symmetrization and eigenvalue clipping.

    Without clipping the result must already be PSD up to round-off;
    InvalidCovariance is raised otherwise, before the caller writes it.
    """
    if config.regularize:
        return regularize_covariance(covariance, config.min_eigenvalue)
    if config.symmetrize:
        covariance = symmetrize(covariance)
    if not is_positive_semidefinite(covariance):
        raise InvalidCovariance(
            "Produced covariance is not positive semi-definite; "
            "enable regularize or choose a non-negative center weight")
    return covariance
