"""
Gaussian state representations.

- GaussianDistribution: single Gaussian with a cached square-root factor
- ComposedStateDistribution: cohesive Gaussian plus factorized partitions
- StandardNormalSource: seeded random source for sampling
"""

from .gaussian import GaussianDistribution
from .standard_normal import StandardNormalSource
from .composed import ComposedStateDistribution, FactorizedPartition

__all__ = [
    'GaussianDistribution',
    'StandardNormalSource',
    'ComposedStateDistribution',
    'FactorizedPartition',
]
