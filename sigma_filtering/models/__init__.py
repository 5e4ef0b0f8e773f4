"""
Process and observation models.

Abstract interfaces consumed by the filters, plus linear-Gaussian, damped
Wiener and uniform implementations.
"""

from .interfaces import ProcessModel, ObservationModel, PartitionObservationModel
from .linear import LinearProcessModel, LinearObservationModel, LinearPartitionObservationModel
from .damped_wiener import DampedWienerProcessModel
from .uniform import UniformObservationModel

__all__ = [
    'ProcessModel',
    'ObservationModel',
    'PartitionObservationModel',
    'LinearProcessModel',
    'LinearObservationModel',
    'LinearPartitionObservationModel',
    'DampedWienerProcessModel',
    'UniformObservationModel',
]
