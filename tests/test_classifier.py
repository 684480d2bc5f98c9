"""
Tests for FingerspellClassifier and LabelDecoder
================================================
"""

import sys
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import InvalidClassIndex, ShapeMismatch
from models.classifier import FingerspellClassifier
from models.label_decoder import CLASS_LABELS, LabelDecoder


class TestFingerspellClassifier:
    """Test suite for the numpy forward pass."""

    def test_biased_model_picks_e(self, biased_artifact):
        """Test that a strong fc3 bias on class 4 yields 'E'."""
        classifier = FingerspellClassifier(biased_artifact)
        idx, conf = classifier.classify(np.zeros(63))

        assert idx == 4
        assert CLASS_LABELS[idx] == "E"
        assert conf > 0.99

    def test_confidence_is_probability_of_argmax(self, artifact):
        """Test that confidence equals p[argmax]."""
        classifier = FingerspellClassifier(artifact)
        features = np.linspace(-0.05, 0.05, 63)
        probs = classifier.predict_proba(features)
        idx, conf = classifier.classify(features)

        assert idx == int(np.argmax(probs))
        assert conf == float(probs[idx])
        assert isinstance(conf, float)

    def test_probabilities(self, artifact):
        """Test that predict_proba returns a 28-class distribution."""
        probs = FingerspellClassifier(artifact).predict_proba(np.zeros(63))
        assert probs.shape == (28,)
        assert abs(probs.sum() - 1.0) < 1e-12

    def test_matches_plain_numpy(self, artifact):
        """Test against an independent matmul implementation."""
        classifier = FingerspellClassifier(artifact)
        x = np.random.default_rng(1).normal(0, 0.05, 63)

        h = (x - artifact.scaler.mean) / artifact.scaler.scale
        h = np.maximum(artifact.fc1.weights @ h + artifact.fc1.bias, 0)
        h = np.maximum(artifact.fc2.weights @ h + artifact.fc2.bias, 0)
        logits = artifact.fc3.weights @ h + artifact.fc3.bias

        np.testing.assert_allclose(classifier.logits(x), logits, rtol=1e-12, atol=1e-12)

    def test_deterministic(self, artifact):
        """Test identical output for identical input."""
        classifier = FingerspellClassifier(artifact)
        x = np.full(63, 0.01)
        assert classifier.classify(x) == classifier.classify(x.copy())

    def test_wrong_feature_length(self, artifact):
        """Test that 62 features raise ShapeMismatch."""
        with pytest.raises(ShapeMismatch):
            FingerspellClassifier(artifact).classify(np.zeros(62))

    def test_chain_checked(self, artifact):
        """Test that an unvalidated artifact with a broken chain is refused."""
        broken = SimpleNamespace(
            scaler=artifact.scaler,
            fc1=artifact.fc1,
            fc2=SimpleNamespace(weights=np.ones((6, 7)), bias=np.ones(6)),
            fc3=artifact.fc3,
        )
        with pytest.raises(ShapeMismatch) as exc_info:
            FingerspellClassifier(broken)
        assert exc_info.value.field == "fc2.weights"


class TestLabelDecoder:
    """Test suite for LabelDecoder."""

    @pytest.fixture
    def decoder(self):
        return LabelDecoder()

    @pytest.mark.parametrize("index,symbol", [
        (0, "A"), (4, "E"), (25, "Z"), (26, "DEL"), (27, "SPACE"),
    ])
    def test_decode(self, decoder, index, symbol):
        assert decoder.decode(index) == symbol

    def test_numpy_integer(self, decoder):
        """Test that numpy integer indices are accepted."""
        assert decoder.decode(np.int64(1)) == "B"

    @pytest.mark.parametrize("index", [-1, 28, 100])
    def test_out_of_range(self, decoder, index):
        with pytest.raises(InvalidClassIndex):
            decoder.decode(index)

    @pytest.mark.parametrize("index", [1.0, "1", True, None])
    def test_non_integer(self, decoder, index):
        with pytest.raises(InvalidClassIndex):
            decoder.decode(index)

    def test_encode(self, decoder):
        assert decoder.encode("SPACE") == 27
        with pytest.raises(KeyError):
            decoder.encode("?")

    def test_size(self, decoder):
        assert len(decoder) == decoder.num_classes == 28
