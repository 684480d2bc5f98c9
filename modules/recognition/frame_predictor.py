"""
FramePredictor - per-frame entry point of the inference core.

Two states: UNINITIALIZED until a ModelArtifact is loaded, then READY for
the rest of the process. Each ``predict`` call is a bounded computation on
exactly the frame it was given; nothing is queued or cached except the last
good Prediction, which the display layer shows while no hand is visible.
"""

import logging
from enum import Enum

from core.errors import MalformedFrame, ModelAlreadyLoaded, ModelNotLoaded
from core.types import Prediction
from models.artifact import load_artifact
from models.classifier import FingerspellClassifier
from models.feature_extractor import LandmarkFeatureExtractor
from models.label_decoder import LabelDecoder

logger = logging.getLogger(__name__)


class PredictorState(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class FramePredictor:
    """Turns one landmark frame into one Prediction.

    Usage::

        predictor = FramePredictor()
        predictor.load_file("models/weights/asl_model.json")
        prediction = predictor.predict(frame)

    One instance owns its last-prediction cache; use one predictor per
    stream when running several hands or cameras side by side.
    """

    def __init__(self, artifact=None):
        self._state = PredictorState.UNINITIALIZED
        self._classifier = None
        self._extractor = LandmarkFeatureExtractor()
        self._decoder = LabelDecoder()
        self._last_prediction = None

        self._predicted = 0
        self._skipped = 0

        if artifact is not None:
            self.load(artifact)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self, artifact):
        """Attach a validated artifact; UNINITIALIZED → READY.

        Raises:
            ModelAlreadyLoaded: if called a second time
            ShapeMismatch: if the artifact does not fit the 63 → 28 chain
        """
        if self._state is PredictorState.READY:
            raise ModelAlreadyLoaded()
        self._classifier = FingerspellClassifier(artifact)
        self._state = PredictorState.READY
        logger.info("FramePredictor ready (hidden sizes %s)",
                    list(artifact.hidden_sizes))
        return self

    def load_file(self, path):
        """Load the artifact at ``path`` and attach it."""
        if self._state is PredictorState.READY:
            raise ModelAlreadyLoaded()
        return self.load(load_artifact(path))

    @property
    def state(self):
        return self._state

    @property
    def is_ready(self):
        return self._state is PredictorState.READY

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def predict(self, frame):
        """Classify one hand's landmarks.

        Args:
            frame: LandmarkFrame or (21, 3) array-like of world landmarks

        Returns:
            Prediction; the "no symbol" sentinel when the frame is empty,
            has the wrong landmark count or contains non-finite values

        Raises:
            ModelNotLoaded: if no artifact has been loaded
        """
        if self._state is not PredictorState.READY:
            raise ModelNotLoaded()

        try:
            features = self._extractor.extract(frame)
        except MalformedFrame as e:
            self._skipped += 1
            logger.debug("Skipping frame: %s", e.reason)
            return Prediction.empty()

        class_idx, confidence = self._classifier.classify(features)
        prediction = Prediction(self._decoder.decode(class_idx), confidence, class_idx)

        self._last_prediction = prediction
        self._predicted += 1
        return prediction

    @property
    def last_prediction(self):
        """Most recent good Prediction, or the sentinel if there is none."""
        if self._last_prediction is None:
            return Prediction.empty()
        return self._last_prediction

    @property
    def stats(self):
        total = self._predicted + self._skipped
        return {
            "state": self._state.value,
            "predicted": self._predicted,
            "skipped": self._skipped,
            "skip_ratio": self._skipped / max(total, 1),
        }
