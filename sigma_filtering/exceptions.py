"""
Exceptions raised by the filtering core.

All errors derive from FilteringError and from the closest builtin
exception type.
"""


class FilteringError(Exception):
    """Base class for all errors raised by sigma_filtering."""


class InvalidCovariance(FilteringError, ValueError):
    """
    A covariance matrix is not symmetric positive semi-definite.

    Raised when a square-root factorization fails on a matrix that is not
    PSD within tolerance, or when a density is evaluated on a singular
    covariance. Callers are expected to regularize the matrix (for example
    with ``GaussianDistribution.regularize``) before retrying.
    """


class UpdateSingularity(FilteringError, ArithmeticError):
    """
    The innovation covariance is singular or too ill-conditioned to invert.

    Recoverable: the distribution passed to the update is left untouched,
    so it still holds the predicted moments.
    """


class ConfigurationError(FilteringError, ValueError):
    """Invalid partition count, dimension mismatch or spread parameter."""
