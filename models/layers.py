"""
Numeric primitives of the forward pass: dense layer, ReLU, softmax, argmax.

DenseLayer accumulates each row left to right with ``np.add.accumulate``
instead of ``W @ x``. BLAS kernels pick their own reduction order (blocking,
SIMD lanes, threads), which changes the low bits of the result between
machines; a sequential accumulation gives the same bits everywhere.
"""

import numpy as np

from core.errors import ShapeMismatch


class DenseLayer:
    """Affine transform ``out[j] = sum_i(x[i] * W[j][i]) + b[j]``."""

    def __init__(self, layer, name="dense"):
        """
        Args:
            layer: LayerWeights (weights shaped [rows][columns], bias [rows])
            name: Layer name used in error messages
        """
        self.name = name
        self._weights = np.asarray(layer.weights, dtype=np.float64)
        self._bias = np.asarray(layer.bias, dtype=np.float64)
        if self._weights.ndim != 2:
            raise ShapeMismatch(name + ".weights", "2-D matrix",
                                "%d-D array" % self._weights.ndim)
        if self._bias.shape != (self._weights.shape[0],):
            raise ShapeMismatch(name + ".bias", self._weights.shape[0],
                                self._bias.shape[0] if self._bias.ndim else 0)

    @property
    def rows(self):
        return int(self._weights.shape[0])

    @property
    def columns(self):
        return int(self._weights.shape[1])

    def forward(self, x):
        """Apply the layer to one input vector.

        Args:
            x: array-like of length ``columns``

        Returns:
            np.ndarray of length ``rows``

        Raises:
            ShapeMismatch: if ``len(x) != columns``
        """
        x = np.asarray(x, dtype=np.float64)
        if x.ndim != 1 or x.shape[0] != self.columns:
            raise ShapeMismatch(self.name + " input", "length %d" % self.columns,
                                "shape %s" % (x.shape,))
        products = self._weights * x
        sums = np.add.accumulate(products, axis=1)[:, -1]
        return sums + self._bias

    __call__ = forward

    def __repr__(self):
        return "DenseLayer(%s, %d -> %d)" % (self.name, self.columns, self.rows)


def relu(x):
    """Elementwise ``max(0, x)``."""
    return np.maximum(np.asarray(x, dtype=np.float64), 0.0)


def softmax(logits):
    """Numerically stable softmax over a 1-D logits vector.

    The maximum logit is subtracted before exponentiating so extreme
    logits cannot overflow ``exp``.
    """
    logits = np.asarray(logits, dtype=np.float64)
    if logits.ndim != 1 or logits.shape[0] == 0:
        raise ShapeMismatch("logits", "non-empty 1-D vector", "shape %s" % (logits.shape,))
    exps = np.exp(logits - np.max(logits))
    return exps / np.sum(exps)


def argmax(values):
    """Index of the largest value; ties go to the lowest index."""
    values = np.asarray(values, dtype=np.float64)
    if values.ndim != 1 or values.shape[0] == 0:
        raise ShapeMismatch("values", "non-empty 1-D vector", "shape %s" % (values.shape,))
    return int(np.argmax(values))
