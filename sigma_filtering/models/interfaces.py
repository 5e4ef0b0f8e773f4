"""
Capability interfaces consumed by the filters.

Concrete systems implement these to plug their transition and measurement
functions into the sigma-point engine. Noise arguments are draws from
N(0, noise_covariance); the engine supplies them through augmentation.
"""

from abc import ABC, abstractmethod

import numpy as np

from ..common.linalg import matrix_square_root


class _NoiseModel(ABC):
    """Common noise bookkeeping for process and observation models."""

    @property
    @abstractmethod
    def noise_covariance(self) -> np.ndarray:
        """Noise covariance (noise_dimension, noise_dimension)."""

    @property
    def noise_square_root(self) -> np.ndarray:
        """Square-root factor of the noise covariance."""
        return matrix_square_root(self.noise_covariance)

    @property
    def noise_dimension(self) -> int:
        return np.atleast_2d(self.noise_covariance).shape[0]


class ProcessModel(_NoiseModel):
    """
    State transition x_{k+1} = f(x_k, u_k, w_k, dt).
    """

    @property
    @abstractmethod
    def state_dimension(self) -> int:
        pass

    @property
    def control_dimension(self) -> int:
        return 0

    @abstractmethod
    def transition(self, state, control, noise, dt) -> np.ndarray:
        """
        Propagate one state.

        Parameters
        ----------
        state : np.ndarray
            State (state_dimension,)
        control : np.ndarray
            Control input (control_dimension,)
        noise : np.ndarray
            Process noise draw (noise_dimension,)
        dt : float
            Elapsed time

        Returns
        -------
        np.ndarray
            Next state (state_dimension,)
        """


class ObservationModel(_NoiseModel):
    """
    Measurement y = h(x, v).
    """

    @property
    @abstractmethod
    def state_dimension(self) -> int:
        pass

    @property
    @abstractmethod
    def observation_dimension(self) -> int:
        pass

    @abstractmethod
    def observe(self, state, noise) -> np.ndarray:
        """
        Map a state and a noise draw to an observation.

        Parameters
        ----------
        state : np.ndarray
            State (state_dimension,)
        noise : np.ndarray
            Observation noise draw (noise_dimension,)

        Returns
        -------
        np.ndarray
            Observation (observation_dimension,)
        """

    def log_probability(self, observation, state) -> float:
        """Log-likelihood log p(observation | state), for density-based consumers."""
        raise NotImplementedError(
            f"{type(self).__name__} does not provide an observation density")


class PartitionObservationModel(_NoiseModel):
    """
    Per-partition measurement y_i = h(a, b_i, v_i).

    The observation depends on the cohesive state and on one factorized
    partition; given the cohesive state, observations of distinct
    partitions are independent.
    """

    @property
    @abstractmethod
    def cohesive_dimension(self) -> int:
        pass

    @property
    @abstractmethod
    def partition_dimension(self) -> int:
        pass

    @property
    @abstractmethod
    def observation_dimension(self) -> int:
        pass

    @abstractmethod
    def observe(self, cohesive_state, partition_state, noise) -> np.ndarray:
        """
        Map the cohesive state, one partition state and a noise draw to that
        partition's observation.
        """
