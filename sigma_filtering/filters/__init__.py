"""
Sigma-point filters.

This module provides:
- Sigma-point generators (canonical and scaled)
- SigmaPointKalmanFilter for a single Gaussian state
- ComposedSigmaPointFilter for a cohesive state with factorized partitions
- FilterContext, a stateful predict/update driver

All filters are stateless and transform the distribution they are given.
"""

from .sigma_points import JulierSigmaPoints, MerweScaledSigmaPoints, SigmaPointSet, augment
from .unscented import SigmaPointKalmanFilter, UpdateResult
from .composed import ComposedSigmaPointFilter, PartitionInnovation
from .context import FilterContext

__all__ = [
    'JulierSigmaPoints',
    'MerweScaledSigmaPoints',
    'SigmaPointSet',
    'augment',
    'SigmaPointKalmanFilter',
    'UpdateResult',
    'ComposedSigmaPointFilter',
    'PartitionInnovation',
    'FilterContext',
]
