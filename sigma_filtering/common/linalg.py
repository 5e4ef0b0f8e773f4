"""
Covariance utilities shared by the distributions and filters.

Square roots, symmetrization, eigenvalue regularization and solve-based gains.
Nothing in here forms an explicit matrix inverse.
"""

import logging

import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve, cholesky, lstsq, solve

from ..config import DEFAULT_MAX_CONDITION_NUMBER, DEFAULT_MIN_EIGENVALUE, DEFAULT_PSD_TOLERANCE
from ..exceptions import InvalidCovariance, UpdateSingularity

logger = logging.getLogger(__name__)


def symmetrize(P):
    """
    Remove round-off asymmetry from a covariance matrix.

    Parameters
    ----------
    P : np.ndarray
        Square matrix (n, n)

    Returns
    -------
    np.ndarray
        0.5 * (P + P.T)
    """
    P = np.asarray(P, dtype=float)
    return 0.5 * (P + P.T)


def is_positive_semidefinite(P, tolerance=DEFAULT_PSD_TOLERANCE):
    """
    Check whether a symmetric matrix is PSD up to relative round-off.

    Parameters
    ----------
    P : np.ndarray
        Square matrix (n, n)
    tolerance : float, optional
        Negative eigenvalues down to ``-tolerance * max|eig|`` are accepted.

    Returns
    -------
    bool
    """
    P = np.asarray(P, dtype=float)
    if P.size == 0:
        return True
    if not np.all(np.isfinite(P)):
        return False
    if not np.allclose(P, P.T, rtol=1e-6, atol=1e-9):
        return False
    eigval = np.linalg.eigvalsh(symmetrize(P))
    scale = np.max(np.abs(eigval))
    return bool(eigval.min() >= -tolerance * scale)


def matrix_square_root(P, psd_tolerance=DEFAULT_PSD_TOLERANCE):
    """
    Compute a square-root factor L with L @ L.T = P.

    The lower Cholesky factor is returned whenever P is positive definite.
    If Cholesky fails but P is PSD within tolerance (singular covariances,
    e.g. noiseless components), the eigen-decomposition root
    ``V @ diag(sqrt(max(eig, 0)))`` is returned instead.

    Parameters
    ----------
    P : np.ndarray
        Covariance matrix (n, n)
    psd_tolerance : float, optional
        Relative tolerance for negative eigenvalues

    Returns
    -------
    np.ndarray
        Square-root factor (n, n)

    Raises
    ------
    InvalidCovariance
        If P contains non-finite values, is not symmetric, or has a
        significantly negative eigenvalue.
    """
    P = np.asarray(P, dtype=float)
    if P.ndim != 2 or P.shape[0] != P.shape[1]:
        raise InvalidCovariance(f"Covariance must be square, got shape {P.shape}")
    if P.size == 0:
        return np.zeros_like(P)
    if not np.all(np.isfinite(P)):
        raise InvalidCovariance("Covariance contains non-finite entries")
    if not np.allclose(P, P.T, rtol=1e-6, atol=1e-9):
        raise InvalidCovariance("Covariance is not symmetric")

    try:
        return cholesky(P, lower=True)
    except LinAlgError:
        pass

    eigval, eigvec = np.linalg.eigh(symmetrize(P))
    scale = np.max(np.abs(eigval))
    if eigval.min() < -psd_tolerance * scale:
        raise InvalidCovariance(
            f"Covariance is not positive semi-definite (min eigenvalue {eigval.min():.3e})")

    logger.debug("Cholesky failed on a singular PSD covariance, using eigen root (n=%d)",
                 P.shape[0])
    return eigvec @ np.diag(np.sqrt(np.maximum(eigval, 0.0)))


def regularize_covariance(P, min_eigenvalue=DEFAULT_MIN_EIGENVALUE):
    """
    Symmetrize P and clip its eigenvalues from below.

    Parameters
    ----------
    P : np.ndarray
        Covariance matrix (n, n)
    min_eigenvalue : float, optional
        Eigenvalue floor

    Returns
    -------
    np.ndarray
        Regularized covariance (n, n)
    """
    P = symmetrize(P)
    if P.size == 0:
        return P
    eigval, eigvec = np.linalg.eigh(P)
    clipped = np.maximum(eigval, min_eigenvalue)
    if np.any(clipped != eigval):
        logger.debug("Clipped %d eigenvalue(s) to %.2e",
                     int(np.sum(clipped != eigval)), min_eigenvalue)
    return symmetrize(eigvec @ np.diag(clipped) @ eigvec.T)


def factorize_innovation(S, max_condition_number=DEFAULT_MAX_CONDITION_NUMBER):
    """
    Cholesky-factorize an innovation covariance for repeated solves.

    Parameters
    ----------
    S : np.ndarray
        Innovation covariance (m, m)
    max_condition_number : float, optional
        Conditioning limit

    Returns
    -------
    tuple
        Factor as returned by ``scipy.linalg.cho_factor``

    Raises
    ------
    UpdateSingularity
        If S is non-finite, ill-conditioned or not positive definite.
    """
    S = np.asarray(S, dtype=float)
    if not np.all(np.isfinite(S)):
        raise UpdateSingularity("Innovation covariance contains non-finite entries")

    condition = np.linalg.cond(S)
    logger.debug("Innovation covariance condition number: %.3e", condition)
    if not np.isfinite(condition) or condition > max_condition_number:
        raise UpdateSingularity(
            f"Innovation covariance is ill-conditioned (cond={condition:.3e}, "
            f"limit={max_condition_number:.1e})")

    try:
        return cho_factor(S, lower=True)
    except LinAlgError as exc:
        raise UpdateSingularity("Innovation covariance is not positive definite") from exc


def kalman_gain(cross_covariance, innovation_covariance,
                max_condition_number=DEFAULT_MAX_CONDITION_NUMBER):
    """
    Compute K = P_xy @ inv(P_yy) by a Cholesky solve.

    Parameters
    ----------
    cross_covariance : np.ndarray
        State/observation cross covariance (n, m)
    innovation_covariance : np.ndarray
        Innovation covariance (m, m)
    max_condition_number : float, optional
        Conditioning limit passed to factorize_innovation

    Returns
    -------
    np.ndarray
        Kalman gain (n, m)
    """
    factor = factorize_innovation(innovation_covariance, max_condition_number)
    return cho_solve(factor, np.asarray(cross_covariance, dtype=float).T).T


def statistical_linearization(cov_xx, cov_xy):
    """
    Linear map J that best explains y from x: J = P_xy.T @ inv(P_xx).

    For a linear function y = A x this recovers A exactly. A singular
    P_xx (static or noiseless components) falls back to a least-squares
    solution.

    Parameters
    ----------
    cov_xx : np.ndarray
        Input covariance (n, n)
    cov_xy : np.ndarray
        Input/output cross covariance (n, m)

    Returns
    -------
    np.ndarray
        Linearization (m, n)
    """
    cov_xx = np.asarray(cov_xx, dtype=float)
    cov_xy = np.asarray(cov_xy, dtype=float)
    try:
        return solve(cov_xx, cov_xy, assume_a='pos').T
    except LinAlgError:
        logger.debug("Singular input covariance in linearization, using least squares")
        return lstsq(cov_xx, cov_xy)[0].T
