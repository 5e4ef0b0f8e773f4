"""
Multivariate Gaussian distribution with a cached square-root factor.
"""

import numpy as np
from scipy.linalg import LinAlgError, cholesky, solve_triangular

from ..common.linalg import matrix_square_root, regularize_covariance, symmetrize
from ..config import DEFAULT_MIN_EIGENVALUE, DEFAULT_PSD_TOLERANCE
from ..exceptions import ConfigurationError, InvalidCovariance

_LOG_2PI = np.log(2.0 * np.pi)


class GaussianDistribution:
    """
    Gaussian N(mean, covariance) holding both moment and square-root forms.

    The covariance and its square-root factor L (covariance = L @ L.T) are
    kept consistent: writing one invalidates the cached other, which is
    recomputed on first access.

    Parameters
    ----------
    mean : np.ndarray
        Mean vector (n,)
    covariance : np.ndarray, optional
        Covariance matrix (n, n). Defaults to the identity.
    square_root : np.ndarray, optional
        Square-root factor (n, n). Mutually exclusive with covariance.

    Examples
    --------
    >>> g = GaussianDistribution(np.zeros(2), np.diag([1.0, 4.0]))
    >>> g.map_standard_normal(np.array([1.0, 1.0]))
    array([1., 2.])
    """

    def __init__(self, mean, covariance=None, square_root=None):
        self._mean = self._as_vector(mean)
        self._covariance = None
        self._square_root = None

        if covariance is not None and square_root is not None:
            raise ConfigurationError("Pass either covariance or square_root, not both")
        if square_root is not None:
            self.square_root = square_root
        elif covariance is not None:
            self.covariance = covariance
        else:
            self.covariance = np.eye(self.dimension)

    @classmethod
    def standard(cls, dimension):
        """Standard normal N(0, I) of the given dimension."""
        return cls(np.zeros(dimension), np.eye(dimension))

    @property
    def dimension(self):
        return self._mean.shape[0]

    @property
    def mean(self):
        return self._mean

    @mean.setter
    def mean(self, value):
        value = self._as_vector(value)
        if value.shape[0] != self.dimension:
            raise ConfigurationError(
                f"Mean dimension mismatch: expected {self.dimension}, got {value.shape[0]}")
        self._mean = value

    @property
    def covariance(self):
        if self._covariance is None:
            L = self._square_root
            self._covariance = L @ L.T
        return self._covariance

    @covariance.setter
    def covariance(self, value):
        self._covariance = self._as_square(value)
        self._square_root = None

    @property
    def square_root(self):
        """
        Square-root factor L of the covariance.

        Lower Cholesky factor for positive-definite covariances, an
        eigen-decomposition root for singular PSD ones.

        Raises
        ------
        InvalidCovariance
            If the covariance is not PSD.
        """
        if self._square_root is None:
            self._square_root = matrix_square_root(self._covariance)
        return self._square_root

    @square_root.setter
    def square_root(self, value):
        self._square_root = self._as_square(value)
        self._covariance = None

    def map_standard_normal(self, noise):
        """
        Affine map of standard-normal variates: mean + L @ noise.

        Parameters
        ----------
        noise : np.ndarray
            Single variate (n,) or a batch (k, n)

        Returns
        -------
        np.ndarray
            Mapped sample(s) with the same shape as ``noise``
        """
        noise = np.asarray(noise, dtype=float)
        if noise.shape[-1] != self.dimension:
            raise ConfigurationError(
                f"Noise dimension mismatch: expected {self.dimension}, got {noise.shape[-1]}")
        return self._mean + noise @ self.square_root.T

    def sample(self, source, size=None):
        """
        Draw samples using an explicit random source.

        Parameters
        ----------
        source : StandardNormalSource
            Random source of matching dimension
        size : int, optional
            Number of samples. None returns a single vector.

        Returns
        -------
        np.ndarray
            Sample (n,) or samples (size, n)
        """
        if source.dimension != self.dimension:
            raise ConfigurationError(
                f"Random source dimension {source.dimension} does not match "
                f"distribution dimension {self.dimension}")
        return self.map_standard_normal(source.sample(size))

    def log_probability(self, x):
        """
        Log-density of x under this Gaussian.

        Uses the Cholesky factor: the log-determinant is 2 * sum(log(diag(L)))
        and the quadratic form is obtained by a triangular solve.

        Parameters
        ----------
        x : np.ndarray
            Point (n,) or batch of points (k, n)

        Returns
        -------
        float or np.ndarray
            Log-density, scalar for a single point

        Raises
        ------
        InvalidCovariance
            If the covariance is not positive definite.
        """
        x = np.asarray(x, dtype=float)
        if x.shape[-1] != self.dimension:
            raise ConfigurationError(
                f"Point dimension mismatch: expected {self.dimension}, got {x.shape[-1]}")
        try:
            L = cholesky(self.covariance, lower=True)
        except LinAlgError as exc:
            raise InvalidCovariance(
                "Log-density requires a positive definite covariance") from exc

        diff = np.atleast_2d(x - self._mean)
        whitened = solve_triangular(L, diff.T, lower=True)
        quadratic = np.sum(whitened**2, axis=0)
        log_det = 2.0 * np.sum(np.log(np.diag(L)))

        log_p = -0.5 * (self.dimension * _LOG_2PI + log_det + quadratic)
        return float(log_p[0]) if x.ndim == 1 else log_p

    def probability(self, x):
        """Density of x, exp(log_probability(x))."""
        return np.exp(self.log_probability(x))

    def regularize(self, min_eigenvalue=DEFAULT_MIN_EIGENVALUE):
        """
        Symmetrize the covariance and clip its eigenvalues in place.

        Parameters
        ----------
        min_eigenvalue : float, optional
            Eigenvalue floor
        """
        self.covariance = regularize_covariance(self.covariance, min_eigenvalue)

    def is_valid(self, tolerance=DEFAULT_PSD_TOLERANCE):
        """True if the covariance can be factorized."""
        try:
            matrix_square_root(self.covariance, tolerance)
        except InvalidCovariance:
            return False
        return True

    def copy(self):
        clone = GaussianDistribution.__new__(GaussianDistribution)
        clone._mean = self._mean.copy()
        clone._covariance = None if self._covariance is None else self._covariance.copy()
        clone._square_root = None if self._square_root is None else self._square_root.copy()
        return clone

    def to_dict(self):
        """Serialize as plain lists: {'mean': [...], 'covariance': [[...]]}."""
        return {
            'mean': self._mean.tolist(),
            'covariance': symmetrize(self.covariance).tolist(),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(np.asarray(data['mean']), np.asarray(data['covariance']))

    def __repr__(self):
        return f"GaussianDistribution(dimension={self.dimension}, mean={self._mean!r})"

    def _as_vector(self, value):
        value = np.array(value, dtype=float)
        if value.ndim == 0:
            value = value.reshape(1)
        if value.ndim != 1:
            raise ConfigurationError(f"Mean must be a vector, got shape {value.shape}")
        return value

    def _as_square(self, value):
        value = np.array(value, dtype=float)
        n = self.dimension
        if value.shape != (n, n):
            raise ConfigurationError(
                f"Covariance shape mismatch: expected ({n}, {n}), got {value.shape}")
        return value
