"""
Sigma-point generation, augmentation and moment recombination.

A sigma-point set is a deterministic, weighted sample of a Gaussian whose
weighted mean and covariance reproduce the Gaussian's first two moments.
Pushing the points through a nonlinear function and recombining gives the
unscented approximation of the transformed distribution.
"""

import numpy as np
from scipy.linalg import block_diag

from ..distributions.gaussian import GaussianDistribution
from ..exceptions import ConfigurationError


class SigmaPointSet:
    """
    Ordered weighted point set.

    Parameters
    ----------
    points : np.ndarray
        Sigma points (num_points, n)
    weights_mean : np.ndarray
        Weights for mean recombination (num_points,)
    weights_cov : np.ndarray
        Weights for covariance recombination (num_points,)
    """

    def __init__(self, points, weights_mean, weights_cov):
        self.points = np.atleast_2d(np.asarray(points, dtype=float))
        self.weights_mean = np.asarray(weights_mean, dtype=float)
        self.weights_cov = np.asarray(weights_cov, dtype=float)

        if not (self.points.shape[0] == self.weights_mean.shape[0] == self.weights_cov.shape[0]):
            raise ConfigurationError(
                f"Point count {self.points.shape[0]} does not match weight counts "
                f"{self.weights_mean.shape[0]}/{self.weights_cov.shape[0]}")

    def __len__(self):
        return self.points.shape[0]

    @property
    def dimension(self):
        return self.points.shape[1]

    def mean(self):
        """Weighted mean: sum_i Wm[i] * X[i]."""
        return np.dot(self.weights_mean, self.points)

    def covariance(self, mean=None):
        """
        Weighted covariance: sum_i Wc[i] * (X[i] - mean)(X[i] - mean)^T.

        Parameters
        ----------
        mean : np.ndarray, optional
            Center of the deviations. Defaults to the weighted mean.

        Returns
        -------
        np.ndarray
            Covariance (n, n)
        """
        return self.cross_covariance(self, mean, mean)

    def cross_covariance(self, other, mean=None, other_mean=None):
        """
        Weighted cross covariance with another point set of equal length.

        Parameters
        ----------
        other : SigmaPointSet
            Point set sharing this set's weights, e.g. propagated points
        mean : np.ndarray, optional
            Center of this set. Defaults to its weighted mean.
        other_mean : np.ndarray, optional
            Center of the other set. Defaults to its weighted mean.

        Returns
        -------
        np.ndarray
            Cross covariance (n, m)
        """
        if len(other) != len(self):
            raise ConfigurationError(
                f"Point sets differ in length: {len(self)} vs {len(other)}")
        if mean is None:
            mean = self.mean()
        if other_mean is None:
            other_mean = other.mean()

        dx = self.points - mean
        dy = other.points - other_mean
        return (dx * self.weights_cov[:, None]).T @ dy

    def transform(self, fn):
        """
        Propagate every point through fn, keeping the weights.

        Parameters
        ----------
        fn : callable
            Function mapping a point (n,) to a vector (m,)

        Returns
        -------
        SigmaPointSet
            Propagated points (num_points, m)
        """
        propagated = np.array([np.atleast_1d(np.asarray(fn(p), dtype=float))
                               for p in self.points])
        return SigmaPointSet(propagated, self.weights_mean, self.weights_cov)

    def split(self, sizes):
        """
        Split the point columns into consecutive groups.

        Used after propagating augmented points to recover the state part and
        each noise part separately.

        Parameters
        ----------
        sizes : sequence of int
            Group dimensions; must sum to ``dimension``

        Returns
        -------
        list of SigmaPointSet
        """
        sizes = [int(s) for s in sizes]
        if sum(sizes) != self.dimension:
            raise ConfigurationError(
                f"Split sizes {sizes} do not add up to dimension {self.dimension}")
        offsets = np.cumsum([0] + sizes)
        return [SigmaPointSet(self.points[:, start:stop], self.weights_mean, self.weights_cov)
                for start, stop in zip(offsets[:-1], offsets[1:])]


class _SymmetricSigmaPoints:
    """
    Shared 2n+1 symmetric construction.

    Subclasses define the scale (n + lambda) and the center weights.
    """

    def _scale(self, n):
        raise NotImplementedError

    def _center_cov_offset(self):
        return 0.0

    def num_sigmas(self, n):
        return 2 * n + 1

    def weights(self, n):
        """
        Mean and covariance weights for an n-dimensional distribution.

        Returns
        -------
        Wm : np.ndarray
            Mean weights (2n+1,)
        Wc : np.ndarray
            Covariance weights (2n+1,)
        """
        scale = self._scale(n)
        Wm = np.full(2 * n + 1, 0.5 / scale)
        Wc = np.copy(Wm)
        Wm[0] = (scale - n) / scale
        Wc[0] = Wm[0] + self._center_cov_offset()
        return Wm, Wc

    def sigma_points(self, distribution):
        """
        Generate sigma points around a Gaussian.

        Parameters
        ----------
        distribution : GaussianDistribution
            Source distribution of dimension n

        Returns
        -------
        SigmaPointSet
            Points (2n+1, n): center, mean + columns of sqrt(scale * P),
            mean - the same columns
        """
        n = distribution.dimension
        Wm, Wc = self.weights(n)

        # Columns of sqrt((n + lambda) * P), laid out as rows
        U = (np.sqrt(self._scale(n)) * distribution.square_root).T

        x = distribution.mean
        sigmas = np.empty((2 * n + 1, n))
        sigmas[0] = x
        sigmas[1:n + 1] = x + U
        sigmas[n + 1:] = x - U

        return SigmaPointSet(sigmas, Wm, Wc)


class JulierSigmaPoints(_SymmetricSigmaPoints):
    """
    Canonical unscented sigma points with a single spread parameter kappa.

    Weights are w0 = kappa / (n + kappa) and wi = 1 / (2 (n + kappa)); mean
    and covariance weights coincide.

    Parameters
    ----------
    kappa : float, optional
        Spread parameter. None selects 3 - n, which keeps n + kappa = 3.
    """

    def __init__(self, kappa=None):
        self.kappa = kappa

    def _scale(self, n):
        kappa = 3.0 - n if self.kappa is None else self.kappa
        scale = n + kappa
        if scale <= 0:
            raise ConfigurationError(
                f"n + kappa must be positive, got n={n}, kappa={kappa}")
        return scale

    def __repr__(self):
        return f"JulierSigmaPoints(kappa={self.kappa})"


class MerweScaledSigmaPoints(_SymmetricSigmaPoints):
    """
    Merwe's scaled sigma points.

    Parameters
    ----------
    alpha : float, optional
        Spread of sigma points around mean (typically 1e-3 to 1)
    beta : float, optional
        Incorporate prior knowledge of distribution (2 is optimal for Gaussian)
    kappa : float, optional
        Secondary scaling parameter. None selects 3 - n.
    """

    def __init__(self, alpha=1.0, beta=2.0, kappa=None):
        if alpha <= 0:
            raise ConfigurationError(f"alpha must be positive, got {alpha}")
        self.alpha = alpha
        self.beta = beta
        self.kappa = kappa

    def _scale(self, n):
        kappa = 3.0 - n if self.kappa is None else self.kappa
        scale = (self.alpha**2) * (n + kappa)
        if scale <= 0:
            raise ConfigurationError(
                f"alpha^2 (n + kappa) must be positive, got n={n}, kappa={kappa}")
        return scale

    def _center_cov_offset(self):
        return 1.0 - self.alpha**2 + self.beta

    def __repr__(self):
        return (f"MerweScaledSigmaPoints(alpha={self.alpha}, beta={self.beta}, "
                f"kappa={self.kappa})")


def augment(*distributions):
    """
    Concatenate independent Gaussians into one joint Gaussian.

    The joint covariance is block diagonal; its square root is assembled from
    the blocks' own factors, so no new factorization is needed. Components
    of dimension zero are skipped.

    Parameters
    ----------
    *distributions : GaussianDistribution
        Components in augmentation order (state first, then noise)

    Returns
    -------
    GaussianDistribution
        Augmented distribution of dimension sum(n_i)
    """
    parts = [d for d in distributions if d.dimension > 0]
    if not parts:
        raise ConfigurationError("Cannot augment an empty set of distributions")
    mean = np.concatenate([d.mean for d in parts])
    square_root = block_diag(*[d.square_root for d in parts])
    return GaussianDistribution(mean, square_root=square_root)


def zero_mean_noise(covariance, square_root=None):
    """
    Zero-mean Gaussian for a noise component.

    Parameters
    ----------
    covariance : np.ndarray
        Noise covariance (m, m)
    square_root : np.ndarray, optional
        Known square-root factor; skips factorization when given

    Returns
    -------
    GaussianDistribution
    """
    covariance = np.atleast_2d(np.asarray(covariance, dtype=float))
    mean = np.zeros(covariance.shape[0])
    if square_root is not None:
        return GaussianDistribution(mean, square_root=square_root)
    return GaussianDistribution(mean, covariance)
