"""
FingerspellClassifier - numpy forward pass of the 3-layer MLP.

Architecture (weights come from the ModelArtifact)::

    Input  : 63 features (21 world landmarks × xyz)
    Scaler : (x - mean) / scale
    FC1    : h1 units, ReLU
    FC2    : h2 units, ReLU
    FC3    : 28 logits (A-Z, DEL, SPACE)
    Output : softmax → argmax → (class_index, confidence)
"""

import logging

from core.errors import ShapeMismatch
from core.types import FEATURE_DIM, NUM_CLASSES
from models.layers import DenseLayer, argmax, relu, softmax
from models.scaler import Scaler

logger = logging.getLogger(__name__)


class FingerspellClassifier:
    """Runs the scaler and dense layers of a ModelArtifact.

    Stateless after construction; safe to share between predictors because
    the artifact arrays are read-only.
    """

    def __init__(self, artifact):
        """
        Args:
            artifact: ModelArtifact

        Raises:
            ShapeMismatch: if the layer chain does not accept 63 features
                or does not end in 28 classes
        """
        self._artifact = artifact
        self._scaler = Scaler(artifact.scaler)
        self._fc1 = DenseLayer(artifact.fc1, "fc1")
        self._fc2 = DenseLayer(artifact.fc2, "fc2")
        self._fc3 = DenseLayer(artifact.fc3, "fc3")
        self._check_chain()

    def _check_chain(self):
        if self._scaler.size != FEATURE_DIM:
            raise ShapeMismatch("scaler", FEATURE_DIM, self._scaler.size)
        expected = FEATURE_DIM
        for layer in (self._fc1, self._fc2, self._fc3):
            if layer.columns != expected:
                raise ShapeMismatch(layer.name + ".weights", "%d columns" % expected,
                                    "%d columns" % layer.columns)
            expected = layer.rows
        if expected != NUM_CLASSES:
            raise ShapeMismatch("fc3.weights", "%d rows" % NUM_CLASSES, "%d rows" % expected)
        logger.debug("Classifier ready: %s -> %s -> %s",
                     self._fc1, self._fc2, self._fc3)

    @property
    def artifact(self):
        return self._artifact

    # ------------------------------------------------------------------
    # Forward pass
    # ------------------------------------------------------------------

    def logits(self, features):
        """Raw fc3 outputs for one 63-dim feature vector."""
        x = self._scaler.transform(features)
        x = relu(self._fc1.forward(x))
        x = relu(self._fc2.forward(x))
        return self._fc3.forward(x)

    def predict_proba(self, features):
        """Softmax distribution over the 28 classes."""
        return softmax(self.logits(features))

    def classify(self, features):
        """Classify one feature vector.

        Args:
            features: array-like of length 63

        Returns:
            (class_index, confidence) with confidence = p[class_index]

        Raises:
            ShapeMismatch: if ``features`` is not 63 long
        """
        probs = self.predict_proba(features)
        class_idx = argmax(probs)
        return class_idx, float(probs[class_idx])
