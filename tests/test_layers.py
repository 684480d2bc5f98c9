"""
Tests for the forward-pass primitives
=====================================
"""

import sys
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import ShapeMismatch
from models.layers import DenseLayer, argmax, relu, softmax


def _layer(weights, bias):
    return SimpleNamespace(weights=np.asarray(weights, dtype=np.float64),
                           bias=np.asarray(bias, dtype=np.float64))


class TestDenseLayer:
    """Test suite for DenseLayer."""

    @pytest.fixture
    def layer(self):
        rng = np.random.default_rng(3)
        return DenseLayer(_layer(rng.normal(size=(5, 63)), rng.normal(size=5)), "fc1")

    def test_output_length(self, layer):
        """Test that the output has one entry per weight row."""
        out = layer.forward(np.ones(63))
        assert out.shape == (5,)
        assert layer.rows == 5
        assert layer.columns == 63

    def test_matches_sequential_sum(self, layer):
        """Test bit-for-bit agreement with a left-to-right Python sum."""
        rng = np.random.default_rng(11)
        x = rng.normal(size=63)
        weights = layer._weights
        bias = layer._bias

        expected = []
        for j in range(weights.shape[0]):
            total = 0.0
            for i in range(weights.shape[1]):
                total += float(x[i]) * float(weights[j, i])
            expected.append(total + float(bias[j]))

        out = layer.forward(x)
        assert out.tolist() == expected

    def test_repeatable(self, layer):
        """Test that the same input gives identical bits every call."""
        x = np.linspace(-1, 1, 63)
        assert layer(x).tobytes() == layer(x).tobytes()

    def test_simple_values(self):
        """Test a hand-computed affine transform."""
        layer = DenseLayer(_layer([[1.0, 2.0], [0.5, -1.0]], [0.1, 0.0]))
        np.testing.assert_allclose(layer.forward([3.0, 4.0]), [11.1, -2.5])

    def test_wrong_input_length(self, layer):
        """Test that a 62-long input raises ShapeMismatch."""
        with pytest.raises(ShapeMismatch) as exc_info:
            layer.forward(np.ones(62))
        assert "fc1" in exc_info.value.field

    def test_two_dimensional_input_rejected(self, layer):
        """Test that batched input is not accepted."""
        with pytest.raises(ShapeMismatch):
            layer.forward(np.ones((2, 63)))

    def test_bias_length_checked(self):
        """Test that bias must match the weight rows."""
        with pytest.raises(ShapeMismatch):
            DenseLayer(_layer(np.ones((3, 4)), np.ones(2)), "fc2")


class TestActivations:
    """Test suite for relu, softmax and argmax."""

    def test_relu(self):
        """Test that negatives are clamped to zero."""
        np.testing.assert_array_equal(relu([-2.0, 0.0, 3.5]), [0.0, 0.0, 3.5])

    def test_relu_does_not_mutate(self):
        """Test that relu returns a new array."""
        x = np.array([-1.0, 1.0])
        relu(x)
        assert x[0] == -1.0

    def test_softmax_sums_to_one(self):
        """Test that probabilities sum to one."""
        rng = np.random.default_rng(5)
        probs = softmax(rng.normal(scale=4.0, size=28))
        assert abs(probs.sum() - 1.0) < 1e-12
        assert np.all(probs >= 0)

    def test_softmax_keeps_argmax(self):
        """Test that softmax preserves the largest logit's position."""
        logits = np.array([0.3, 2.0, -1.0, 1.9])
        assert argmax(softmax(logits)) == argmax(logits) == 1

    def test_softmax_extreme_logits(self):
        """Test that very large logits do not overflow."""
        probs = softmax([1000.0, 0.0, -1000.0])
        assert np.all(np.isfinite(probs))
        assert probs[0] == pytest.approx(1.0)

    def test_softmax_uniform(self):
        """Test equal logits give a uniform distribution."""
        np.testing.assert_allclose(softmax(np.zeros(4)), [0.25] * 4)

    def test_softmax_empty(self):
        """Test that an empty logits vector is rejected."""
        with pytest.raises(ShapeMismatch):
            softmax([])

    def test_argmax_tie_goes_to_lowest_index(self):
        """Test deterministic tie-breaking."""
        assert argmax([0.2, 0.4, 0.4, 0.1]) == 1

    def test_argmax_returns_int(self):
        """Test that the index is a plain int."""
        assert type(argmax(np.array([1.0, 3.0]))) is int
