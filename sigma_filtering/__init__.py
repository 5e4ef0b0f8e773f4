"""
Sigma Filtering

Sigma-point (unscented) Kalman filtering for continuous state estimation,
with a composed Gaussian state made of one cohesive block and any number of
factorized partitions filtered in linear time.
"""

__version__ = "1.0.0"

from .config import FilterConfig
from .exceptions import ConfigurationError, FilteringError, InvalidCovariance, UpdateSingularity
from .distributions.gaussian import GaussianDistribution
from .distributions.standard_normal import StandardNormalSource
from .distributions.composed import ComposedStateDistribution, FactorizedPartition
from .filters.sigma_points import JulierSigmaPoints, MerweScaledSigmaPoints, SigmaPointSet, augment
from .filters.unscented import SigmaPointKalmanFilter, UpdateResult
from .filters.composed import ComposedSigmaPointFilter, PartitionInnovation
from .filters.context import FilterContext

__all__ = [
    'FilterConfig',
    'FilteringError',
    'InvalidCovariance',
    'UpdateSingularity',
    'ConfigurationError',
    'GaussianDistribution',
    'StandardNormalSource',
    'ComposedStateDistribution',
    'FactorizedPartition',
    'SigmaPointSet',
    'JulierSigmaPoints',
    'MerweScaledSigmaPoints',
    'augment',
    'SigmaPointKalmanFilter',
    'UpdateResult',
    'ComposedSigmaPointFilter',
    'PartitionInnovation',
    'FilterContext',
]
