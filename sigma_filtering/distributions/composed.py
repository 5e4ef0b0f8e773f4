"""
Composed state distribution: one cohesive Gaussian plus factorized partitions.

The joint state is (a, b_1, ..., b_N). Each partition b_i is correlated with
the cohesive state a through cov_ab_i, and partitions are conditionally
independent given a. Only the blocks

    cov_aa,  cov_bb_i,  cov_ab_i   (i = 1..N)

are stored, so memory and filter cost grow linearly in N. No covariance
between two distinct partitions is ever kept.
"""

from dataclasses import dataclass

import numpy as np

from ..exceptions import ConfigurationError
from .gaussian import GaussianDistribution


@dataclass
class FactorizedPartition:
    """
    One factorized partition.

    Attributes
    ----------
    mean_b : np.ndarray
        Partition mean (n_b,)
    cov_bb : np.ndarray
        Partition covariance (n_b, n_b)
    cov_ab : np.ndarray
        Cohesive/partition cross covariance (n_a, n_b)
    """
    mean_b: np.ndarray
    cov_bb: np.ndarray
    cov_ab: np.ndarray

    @property
    def dimension(self):
        return self.mean_b.shape[0]

    def copy(self):
        return FactorizedPartition(self.mean_b.copy(), self.cov_bb.copy(), self.cov_ab.copy())


class ComposedStateDistribution:
    """
    Joint Gaussian over a cohesive state and N factorized partitions.

    The distribution is the sole owner of its partition records. It is
    mutated in place by ComposedSigmaPointFilter; concurrent mutation of the
    same instance must be serialized by the caller.

    Examples
    --------
    >>> dist = ComposedStateDistribution()
    >>> dist.initialize(np.zeros(3), 10, np.zeros(1), sigma_a=1.0, sigma_b=0.5)
    >>> dist.partition_count
    10
    """

    def __init__(self):
        self.mean_a = np.zeros(0)
        self.cov_aa = np.zeros((0, 0))
        self.partitions = []

    def initialize(self, initial_a, partition_count, initial_b, sigma_a=1.0, sigma_b=1.0):
        """
        Reset to a block-diagonal prior.

        Sets mean_a = initial_a, cov_aa = sigma_a * I and, for each of the
        partition_count partitions, mean_b = initial_b, cov_bb = sigma_b * I,
        cov_ab = 0.

        Parameters
        ----------
        initial_a : np.ndarray
            Cohesive mean (n_a,)
        partition_count : int
            Number of partitions N (a positive integer)
        initial_b : np.ndarray
            Mean shared by all partitions (n_b,)
        sigma_a : float, optional
            Cohesive variance scale
        sigma_b : float, optional
            Partition variance scale

        Raises
        ------
        ConfigurationError
            If partition_count is not a positive integer or a mean is not a
            vector.
        """
        if partition_count != int(partition_count) or partition_count <= 0:
            raise ConfigurationError(
                f"Partition count must be a positive integer, got {partition_count}")

        mean_a = _vector(initial_a, "initial_a")
        mean_b = _vector(initial_b, "initial_b")
        n_a, n_b = mean_a.shape[0], mean_b.shape[0]

        self.mean_a = mean_a
        self.cov_aa = sigma_a * np.eye(n_a)
        self.partitions = [
            FactorizedPartition(mean_b.copy(), sigma_b * np.eye(n_b), np.zeros((n_a, n_b)))
            for _ in range(int(partition_count))
        ]

    @property
    def a_dimension(self):
        return self.mean_a.shape[0]

    @property
    def b_dimension(self):
        """Partition dimension, 0 when there are no partitions."""
        if self.partitions:
            return self.partitions[0].dimension
        return 0

    @property
    def partition_count(self):
        return len(self.partitions)

    def __len__(self):
        return len(self.partitions)

    def __iter__(self):
        return iter(self.partitions)

    def __getitem__(self, index):
        return self.partitions[index]

    def append_partition(self, mean_b, cov_bb=None, cov_ab=None):
        """
        Add a partition.

        Parameters
        ----------
        mean_b : np.ndarray
            Partition mean (n_b,); must match existing partitions
        cov_bb : np.ndarray, optional
            Partition covariance, identity if omitted
        cov_ab : np.ndarray, optional
            Cross covariance with the cohesive state, zero if omitted

        Raises
        ------
        ConfigurationError
            On any dimension mismatch.
        """
        mean_b = _vector(mean_b, "mean_b")
        n_a, n_b = self.a_dimension, mean_b.shape[0]
        if self.partitions and n_b != self.b_dimension:
            raise ConfigurationError(
                f"Partition dimension mismatch: expected {self.b_dimension}, got {n_b}")

        cov_bb = np.eye(n_b) if cov_bb is None else np.array(cov_bb, dtype=float)
        cov_ab = np.zeros((n_a, n_b)) if cov_ab is None else np.array(cov_ab, dtype=float)
        partition = FactorizedPartition(mean_b, cov_bb, cov_ab)
        self._validate_partition(partition)
        self.partitions.append(partition)
        return partition

    def remove_partition(self, index):
        """Remove and return partition ``index``."""
        return self.partitions.pop(index)

    def validate(self):
        """
        Check all block shapes.

        Raises
        ------
        ConfigurationError
            If cov_aa or any partition block has an inconsistent shape.
        """
        n_a = self.a_dimension
        if self.cov_aa.shape != (n_a, n_a):
            raise ConfigurationError(
                f"cov_aa shape mismatch: expected ({n_a}, {n_a}), got {self.cov_aa.shape}")
        n_b = self.b_dimension
        for i, partition in enumerate(self.partitions):
            if partition.dimension != n_b:
                raise ConfigurationError(
                    f"Partition {i} dimension mismatch: expected {n_b}, got {partition.dimension}")
            self._validate_partition(partition)

    def cohesive_distribution(self):
        """Marginal of the cohesive state as a GaussianDistribution."""
        return GaussianDistribution(self.mean_a.copy(), self.cov_aa.copy())

    def partition_distribution(self, index):
        """Marginal of partition ``index`` as a GaussianDistribution."""
        partition = self.partitions[index]
        return GaussianDistribution(partition.mean_b.copy(), partition.cov_bb.copy())

    def joint_block(self, index):
        """
        Joint Gaussian over (a, b_index).

        Returns
        -------
        GaussianDistribution
            Distribution of dimension n_a + n_b, cohesive part first
        """
        partition = self.partitions[index]
        mean = np.concatenate([self.mean_a, partition.mean_b])
        cov = np.block([[self.cov_aa, partition.cov_ab],
                        [partition.cov_ab.T, partition.cov_bb]])
        return GaussianDistribution(mean, cov)

    def copy(self):
        clone = ComposedStateDistribution()
        clone.mean_a = self.mean_a.copy()
        clone.cov_aa = self.cov_aa.copy()
        clone.partitions = [p.copy() for p in self.partitions]
        return clone

    def to_dict(self):
        """Serialize each block as plain lists."""
        return {
            'mean_a': self.mean_a.tolist(),
            'cov_aa': self.cov_aa.tolist(),
            'partitions': [
                {'mean_b': p.mean_b.tolist(), 'cov_bb': p.cov_bb.tolist(), 'cov_ab': p.cov_ab.tolist()}
                for p in self.partitions
            ],
        }

    @classmethod
    def from_dict(cls, data):
        """
        Rebuild from to_dict() output.

        Raises
        ------
        ConfigurationError
            If any block does not have the shape its means imply.
        """
        dist = cls()
        dist.mean_a = _vector(data['mean_a'], "mean_a")
        dist.cov_aa = np.array(data['cov_aa'], dtype=float)
        dist.validate()
        for block in data['partitions']:
            dist.append_partition(block['mean_b'], block['cov_bb'], block['cov_ab'])
        return dist

    def __repr__(self):
        return (f"ComposedStateDistribution(a_dimension={self.a_dimension}, "
                f"b_dimension={self.b_dimension}, partitions={self.partition_count})")

    def _validate_partition(self, partition):
        n_a, n_b = self.a_dimension, partition.dimension
        if partition.cov_bb.shape != (n_b, n_b):
            raise ConfigurationError(
                f"cov_bb shape mismatch: expected ({n_b}, {n_b}), got {partition.cov_bb.shape}")
        if partition.cov_ab.shape != (n_a, n_b):
            raise ConfigurationError(
                f"cov_ab shape mismatch: expected ({n_a}, {n_b}), got {partition.cov_ab.shape}")


def _vector(value, name):
    value = np.array(value, dtype=float)
    if value.ndim == 0:
        value = value.reshape(1)
    if value.ndim != 1:
        raise ConfigurationError(f"{name} must be a vector, got shape {value.shape}")
    return value
