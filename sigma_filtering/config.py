"""
Filter configuration and numerical defaults.
"""

from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError

# Numerical defaults
DEFAULT_MIN_EIGENVALUE = 1e-12      # eigenvalue floor used by regularization
DEFAULT_PSD_TOLERANCE = 1e-9        # relative tolerance for "PSD within round-off"
DEFAULT_MAX_CONDITION_NUMBER = 1e12 # innovation covariance conditioning limit


@dataclass
class FilterConfig:
    """
    Configuration shared by the sigma-point filters.

    Attributes
    ----------
    kappa : float, optional
        Spread parameter of the canonical sigma-point scheme. None selects
        ``3 - n`` for an n-dimensional (augmented) distribution.
    symmetrize : bool
        Replace every produced covariance with ``0.5 * (P + P.T)``.
    regularize : bool
        Clip eigenvalues of produced covariances to ``min_eigenvalue``.
    min_eigenvalue : float
        Eigenvalue floor used when ``regularize`` is enabled.
    max_condition_number : float
        Innovation covariances with a larger condition number raise
        UpdateSingularity.
    """
    kappa: Optional[float] = None
    symmetrize: bool = True
    regularize: bool = False
    min_eigenvalue: float = DEFAULT_MIN_EIGENVALUE
    max_condition_number: float = DEFAULT_MAX_CONDITION_NUMBER

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ConfigurationError on out-of-range values."""
        if self.min_eigenvalue < 0:
            raise ConfigurationError(
                f"min_eigenvalue must be non-negative, got {self.min_eigenvalue}")
        if self.max_condition_number <= 1.0:
            raise ConfigurationError(
                f"max_condition_number must exceed 1, got {self.max_condition_number}")
