"""
Standard scaler transform using the artifact's per-feature mean/scale.
"""

import numpy as np

from core.errors import ShapeMismatch


class Scaler:
    """Standardizes feature vectors: ``(v - mean) / scale``.

    Mirrors scikit-learn's ``StandardScaler.transform`` for the parameters
    exported with the model. Inputs are never modified in place.
    """

    def __init__(self, params):
        """
        Args:
            params: ScalerParams (zero scales already rejected at load)
        """
        self._mean = np.asarray(params.mean, dtype=np.float64)
        self._scale = np.asarray(params.scale, dtype=np.float64)
        if self._mean.shape != self._scale.shape:
            raise ShapeMismatch("scaler.scale", self._mean.shape[0], self._scale.shape[0])

    @property
    def size(self):
        return int(self._mean.shape[0])

    def _check(self, vector, field):
        vector = np.asarray(vector, dtype=np.float64)
        if vector.ndim != 1 or vector.shape[0] != self.size:
            raise ShapeMismatch(field, "length %d" % self.size, "shape %s" % (vector.shape,))
        return vector

    def transform(self, vector):
        """Standardize one feature vector.

        Args:
            vector: array-like of length 63

        Returns:
            New np.ndarray of the same length

        Raises:
            ShapeMismatch: if the length differs from the scaler's
        """
        vector = self._check(vector, "features")
        return (vector - self._mean) / self._scale

    def inverse_transform(self, vector):
        """Undo :meth:`transform`: ``v * scale + mean``."""
        vector = self._check(vector, "scaled features")
        return vector * self._scale + self._mean
