"""
Common numerical utilities.

Covariance square roots, symmetrization, regularization and solve-based gains.
"""

from .linalg import (
    symmetrize,
    is_positive_semidefinite,
    matrix_square_root,
    regularize_covariance,
    factorize_innovation,
    kalman_gain,
    statistical_linearization,
)

__all__ = [
    'symmetrize',
    'is_positive_semidefinite',
    'matrix_square_root',
    'regularize_covariance',
    'factorize_innovation',
    'kalman_gain',
    'statistical_linearization',
]
