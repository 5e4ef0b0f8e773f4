"""
Sigma-point filter for a ComposedStateDistribution.

The cohesive state a is filtered with the ordinary sigma-point equations.
Each partition b_i is handled on its own, using only its blocks and
read-only cohesive quantities, so predict and update cost O(N) in the
number of partitions and the dense joint covariance is never formed.

Predict
    cohesive and partition moments are predicted independently and the
    cross covariances follow the statistical linearizations
    F (cohesive) and G_i (partition): cov_ab_i <- F cov_ab_i G_i^T.

Update, cohesive observation y = h(a, v)
    a is updated as usual and every partition is conditioned on the new
    cohesive posterior through K_a = cov_ba cov_aa^-1.

Update, partition observations y_i = h(a, b_i, v_i)
    the cohesive posterior is resolved first in information form from the
    per-partition Schur complements, then each partition is conditioned
    on (a, y_i).
"""

import logging
from functools import partial
from typing import NamedTuple

import numpy as np
from scipy.linalg import cho_solve

from ..common.linalg import (factorize_innovation, kalman_gain,
                             statistical_linearization, symmetrize)
from ..config import FilterConfig
from ..distributions.composed import FactorizedPartition
from ..distributions.gaussian import GaussianDistribution
from ..exceptions import ConfigurationError
from .sigma_points import JulierSigmaPoints, augment, zero_mean_noise
from .unscented import (UpdateResult, check_dimension, control_input, finalize_covariance,
                        propagate, unscented_observe, unscented_predict)

logger = logging.getLogger(__name__)


class PartitionInnovation(NamedTuple):
    """
    Transient per-partition quantities of a partition observation update.

    Attributes
    ----------
    observation : np.ndarray
        Measured y_i (m,)
    predicted_observation : np.ndarray
        Predicted observation mean (m,)
    cov_yy : np.ndarray
        Predicted observation covariance (m, m)
    cov_ay : np.ndarray
        Cohesive/observation cross covariance (n_a, m)
    cov_by : np.ndarray
        Partition/observation cross covariance (n_b, m)
    information_matrix : np.ndarray
        Contribution L_i^T R_i^-1 L_i to the cohesive information (n_a, n_a)
    information_vector : np.ndarray
        Contribution L_i^T R_i^-1 (y_i - predicted) (n_a,)
    """
    observation: np.ndarray
    predicted_observation: np.ndarray
    cov_yy: np.ndarray
    cov_ay: np.ndarray
    cov_by: np.ndarray
    information_matrix: np.ndarray
    information_vector: np.ndarray

    @property
    def innovation(self):
        return self.observation - self.predicted_observation


class ComposedSigmaPointFilter:
    """
    Sigma-point filter over a cohesive state and factorized partitions.

    Parameters
    ----------
    process_model : ProcessModel
        Cohesive transition a' = f(a, u, w, dt)
    partition_process_model : ProcessModel, optional
        Partition transition b' = g(b, u_b, w_b, dt). None keeps the
        partitions static.
    observation_model : ObservationModel, optional
        Cohesive measurement y = h(a, v), used by update()
    partition_observation_model : PartitionObservationModel, optional
        Per-partition measurement y_i = h(a, b_i, v_i), used by
        update_partitions()
    points : JulierSigmaPoints or MerweScaledSigmaPoints, optional
        Sigma-point generator. Defaults to JulierSigmaPoints(config.kappa).
    config : FilterConfig, optional
        Numerical settings
    mapper : callable, optional
        map-like callable running the per-partition steps (default: builtin
        map). Pass ``executor.map`` to spread partitions over workers.

    Examples
    --------
    >>> dist = ComposedStateDistribution()
    >>> dist.initialize(np.zeros(3), 10, np.zeros(1))
    >>> cspkf = ComposedSigmaPointFilter(
    ...     LinearProcessModel.random_walk(3, 0.01 * np.eye(3)),
    ...     partition_observation_model=LinearPartitionObservationModel(H_a, H_b, R))
    >>> cspkf.predict(dist, dt=0.1)
    >>> cspkf.update_partitions(dist, observations)
    """

    def __init__(self, process_model, partition_process_model=None, observation_model=None,
                 partition_observation_model=None, points=None, config=None, mapper=map):
        self.process_model = process_model
        self.partition_process_model = partition_process_model
        self.observation_model = observation_model
        self.partition_observation_model = partition_observation_model
        self.config = config if config is not None else FilterConfig()
        self.points = points if points is not None else JulierSigmaPoints(self.config.kappa)
        self.mapper = mapper

    def predict(self, distribution, dt=1.0, control=None, partition_control=None):
        """
        Predict the cohesive state and every partition.

        Parameters
        ----------
        distribution : ComposedStateDistribution
            Overwritten with the prediction
        dt : float, optional
            Elapsed time
        control : np.ndarray, optional
            Cohesive control input
        partition_control : np.ndarray, optional
            Control input shared by all partitions

        Raises
        ------
        InvalidCovariance
            If a predicted covariance block is not PSD and regularize is
            off. No block is written in that case.
        """
        model = self._require(self.process_model, "process model")
        check_dimension(distribution.a_dimension, model.state_dimension, "process model state")
        control = control_input(control, model.control_dimension)

        cohesive = distribution.cohesive_distribution()
        mean_a, cov_aa, cross = unscented_predict(cohesive, model, self.points, control, dt)
        cov_aa = finalize_covariance(cov_aa, self.config)
        F = statistical_linearization(distribution.cov_aa, cross)

        partition_model = self.partition_process_model
        if partition_model is not None and distribution.partitions:
            check_dimension(distribution.b_dimension, partition_model.state_dimension,
                            "partition process model state")
            partition_control = control_input(partition_control,
                                              partition_model.control_dimension)

        step = partial(self._predict_partition, F=F, control=partition_control, dt=dt)
        partitions = list(self.mapper(step, distribution.partitions))

        distribution.mean_a = mean_a
        distribution.cov_aa = cov_aa
        distribution.partitions = partitions
        logger.debug("Predicted composed state: a_dim=%d, %d partition(s), dt=%.4g",
                     distribution.a_dimension, len(partitions), dt)

    def update(self, distribution, observation):
        """
        Update with an observation of the cohesive state only.

        Parameters
        ----------
        distribution : ComposedStateDistribution
            Predicted distribution, overwritten with the posterior
        observation : np.ndarray
            Measurement y (m,)

        Returns
        -------
        UpdateResult
            Innovation statistics of the cohesive update

        Raises
        ------
        UpdateSingularity
            If the innovation covariance is singular; the distribution is
            left untouched.
        """
        model = self._require(self.observation_model, "observation model")
        check_dimension(distribution.a_dimension, model.state_dimension, "observation model state")
        y = np.atleast_1d(np.asarray(observation, dtype=float))
        check_dimension(y.shape[0], model.observation_dimension, "observation")

        cohesive = distribution.cohesive_distribution()
        y_mean, cov_yy, cov_ay = unscented_observe(cohesive, model, self.points)
        cov_yy = symmetrize(cov_yy)

        K = kalman_gain(cov_ay, cov_yy, self.config.max_condition_number)
        innovation = y - y_mean
        log_likelihood = GaussianDistribution(y_mean, cov_yy).log_probability(y)

        mean_a = distribution.mean_a + K @ innovation
        cov_aa = finalize_covariance(distribution.cov_aa - K @ cov_yy @ K.T, self.config)

        step = partial(self._condition_partition, cov_aa_prior=distribution.cov_aa,
                       delta_a=mean_a - distribution.mean_a, cov_aa_post=cov_aa)
        partitions = list(self.mapper(step, distribution.partitions))

        distribution.mean_a = mean_a
        distribution.cov_aa = cov_aa
        distribution.partitions = partitions
        logger.debug("Updated composed state from a %d-dim cohesive observation "
                     "(log-likelihood %.4g)", y.shape[0], log_likelihood)

        return UpdateResult(y_mean, innovation, cov_yy, log_likelihood)

    def update_partitions(self, distribution, observations):
        """
        Update with one observation per partition.

        Parameters
        ----------
        distribution : ComposedStateDistribution
            Predicted distribution, overwritten with the posterior
        observations : sequence of np.ndarray
            y_i for each partition, in partition order

        Returns
        -------
        list of PartitionInnovation
            Per-partition innovation records

        Raises
        ------
        ConfigurationError
            If the number of observations differs from the partition count.
        UpdateSingularity
            If a conditional innovation covariance, a joint (a, y_i)
            covariance or the cohesive information matrix is singular.
            No block is written in that case.
        """
        model = self._require(self.partition_observation_model, "partition observation model")
        observations = [np.atleast_1d(np.asarray(y, dtype=float)) for y in observations]
        if len(observations) != distribution.partition_count:
            raise ConfigurationError(
                f"Got {len(observations)} observation(s) for "
                f"{distribution.partition_count} partition(s)")
        check_dimension(distribution.a_dimension, model.cohesive_dimension,
                        "partition observation model cohesive state")
        if distribution.partitions:
            check_dimension(distribution.b_dimension, model.partition_dimension,
                            "partition observation model partition state")
        for y in observations:
            check_dimension(y.shape[0], model.observation_dimension, "observation")

        n_a = distribution.a_dimension
        max_cond = self.config.max_condition_number
        mean_a, cov_aa = distribution.mean_a, distribution.cov_aa
        aa_factor = factorize_innovation(cov_aa, max_cond)
        noise = zero_mean_noise(model.noise_covariance, model.noise_square_root)

        step = partial(self._observe_partition, mean_a=mean_a, cov_aa=cov_aa,
                       aa_factor=aa_factor, noise=noise)
        innovations = list(self.mapper(step, distribution.partitions, observations))

        # Cohesive posterior from the summed partition information
        information = cho_solve(aa_factor, np.eye(n_a))
        information_vector = np.zeros(n_a)
        for record in innovations:
            information = information + record.information_matrix
            information_vector = information_vector + record.information_vector
        information_factor = factorize_innovation(symmetrize(information), max_cond)
        cov_aa_post = finalize_covariance(cho_solve(information_factor, np.eye(n_a)), self.config)
        mean_a_post = mean_a + cov_aa_post @ information_vector

        step = partial(self._resolve_partition, mean_a=mean_a, cov_aa=cov_aa,
                       mean_a_post=mean_a_post, cov_aa_post=cov_aa_post)
        partitions = list(self.mapper(step, distribution.partitions, innovations))

        distribution.mean_a = mean_a_post
        distribution.cov_aa = cov_aa_post
        distribution.partitions = partitions
        logger.debug("Updated composed state from %d partition observation(s)",
                     len(innovations))

        return innovations

    def _predict_partition(self, partition, F, control, dt):
        model = self.partition_process_model
        if model is None:
            mean_b, cov_bb = partition.mean_b.copy(), partition.cov_bb.copy()
            G = np.eye(partition.dimension)
        else:
            prior = GaussianDistribution(partition.mean_b, partition.cov_bb)
            mean_b, cov_bb, cross = unscented_predict(prior, model, self.points, control, dt)
            cov_bb = finalize_covariance(cov_bb, self.config)
            G = statistical_linearization(partition.cov_bb, cross)
        return FactorizedPartition(mean_b, cov_bb, F @ partition.cov_ab @ G.T)

    def _condition_partition(self, partition, cov_aa_prior, delta_a, cov_aa_post):
        K_a = statistical_linearization(cov_aa_prior, partition.cov_ab)
        mean_b = partition.mean_b + K_a @ delta_a
        cov_bb = partition.cov_bb - K_a @ partition.cov_ab + K_a @ cov_aa_post @ K_a.T
        return FactorizedPartition(mean_b, finalize_covariance(cov_bb, self.config),
                                   cov_aa_post @ K_a.T)

    def _observe_partition(self, partition, observation, mean_a, cov_aa, aa_factor, noise):
        model = self.partition_observation_model
        n_a, n_b = mean_a.shape[0], partition.dimension

        joint = GaussianDistribution(
            np.concatenate([mean_a, partition.mean_b]),
            symmetrize(np.block([[cov_aa, partition.cov_ab],
                                 [partition.cov_ab.T, partition.cov_bb]])))
        sigmas = self.points.sigma_points(augment(joint, noise))
        a_part, b_part, noise_part = sigmas.split([n_a, n_b, noise.dimension])

        observed = propagate(model.observe, a_part, b_part, noise_part)
        y_mean = observed.mean()
        cov_yy = symmetrize(observed.covariance(y_mean))
        cov_ay = a_part.cross_covariance(observed, mean_a, y_mean)
        cov_by = b_part.cross_covariance(observed, partition.mean_b, y_mean)

        # y_i given a: y_i ~ N(y_mean + L (a - mean_a), R_i)
        L = cho_solve(aa_factor, cov_ay).T
        R = symmetrize(cov_yy - L @ cov_ay)
        R_factor = factorize_innovation(R, self.config.max_condition_number)
        LtRinv = cho_solve(R_factor, L).T

        return PartitionInnovation(observation, y_mean, cov_yy, cov_ay, cov_by,
                                   LtRinv @ L, LtRinv @ (observation - y_mean))

    def _resolve_partition(self, partition, record, mean_a, cov_aa, mean_a_post, cov_aa_post):
        n_a = mean_a.shape[0]
        cov_zz = np.block([[cov_aa, record.cov_ay],
                           [record.cov_ay.T, record.cov_yy]])
        cov_bz = np.hstack([partition.cov_ab.T, record.cov_by])

        K = kalman_gain(cov_bz, symmetrize(cov_zz), self.config.max_condition_number)
        K_a, K_y = K[:, :n_a], K[:, n_a:]

        mean_b = (partition.mean_b + K_a @ (mean_a_post - mean_a)
                  + K_y @ record.innovation)
        cov_bb = partition.cov_bb - K @ cov_bz.T + K_a @ cov_aa_post @ K_a.T
        return FactorizedPartition(mean_b, finalize_covariance(cov_bb, self.config),
                                   cov_aa_post @ K_a.T)

    def _require(self, model, name):
        if model is None:
            raise ConfigurationError(f"This filter was constructed without a {name}")
        return model
