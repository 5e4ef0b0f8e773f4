"""
Seeded source of standard-normal variates.
"""

import numpy as np

from ..exceptions import ConfigurationError


class StandardNormalSource:
    """
    Produces N(0, I) vectors of a fixed dimension.

    Each source owns its own numpy Generator, so two sources built with the
    same seed yield the same stream and no global random state is touched.

    Parameters
    ----------
    dimension : int
        Dimension of the produced vectors
    seed : int or np.random.SeedSequence, optional
        Seed for reproducible streams
    """

    def __init__(self, dimension, seed=None):
        if dimension <= 0:
            raise ConfigurationError(f"Dimension must be positive, got {dimension}")
        self.dimension = int(dimension)
        self._seed_sequence = (seed if isinstance(seed, np.random.SeedSequence)
                               else np.random.SeedSequence(seed))
        self._rng = np.random.default_rng(self._seed_sequence)

    def sample(self, size=None):
        """
        Draw standard-normal variates.

        Parameters
        ----------
        size : int, optional
            Number of vectors. None returns a single vector.

        Returns
        -------
        np.ndarray
            Vector (dimension,) or batch (size, dimension)
        """
        if size is None:
            return self._rng.standard_normal(self.dimension)
        return self._rng.standard_normal((size, self.dimension))

    def spawn(self, count=1, dimension=None):
        """
        Create independent child sources, e.g. one per worker.

        Parameters
        ----------
        count : int, optional
            Number of children
        dimension : int, optional
            Dimension of the children (defaults to this source's)

        Returns
        -------
        list of StandardNormalSource
        """
        dimension = self.dimension if dimension is None else dimension
        return [StandardNormalSource(dimension, seed=child)
                for child in self._seed_sequence.spawn(count)]
