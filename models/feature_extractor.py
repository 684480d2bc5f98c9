"""
Feature extraction: 21-point world landmarks → 63-dim feature vector.

The classifier was trained on raw MediaPipe world landmarks (meters), so no
centring or scaling happens here; standardization is the Scaler's job.

Feature layout (63 dimensions)::

    [x0, y0, z0, x1, y1, z1, ..., x20, y20, z20]   (landmark order)
"""

import numpy as np

from core.errors import MalformedFrame
from core.types import COORDS_PER_LANDMARK, NUM_LANDMARKS, LandmarkFrame


class LandmarkFeatureExtractor:
    """Flattens a LandmarkFrame into the classifier's input vector."""

    def __init__(self, num_landmarks=NUM_LANDMARKS):
        self._num_landmarks = num_landmarks
        self._feature_dim = num_landmarks * COORDS_PER_LANDMARK

    @property
    def feature_dim(self):
        return self._feature_dim

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def extract(self, frame):
        """Convert one hand's landmarks to a flat feature vector.

        Args:
            frame: LandmarkFrame, or an array-like of shape (21, 3)

        Returns:
            np.ndarray of shape (63,), dtype float64

        Raises:
            MalformedFrame: wrong landmark count or non-finite coordinates
        """
        if frame is None:
            raise MalformedFrame("no landmarks")

        if isinstance(frame, LandmarkFrame):
            landmarks = frame.to_numpy()
        else:
            try:
                landmarks = np.asarray(frame, dtype=np.float64)
            except (TypeError, ValueError) as e:
                raise MalformedFrame("landmarks are not numeric: %s" % e)

        if landmarks.size == 0:
            raise MalformedFrame("no landmarks")
        if landmarks.ndim != 2 or landmarks.shape[1] != COORDS_PER_LANDMARK:
            raise MalformedFrame("expected (N, 3) landmarks, got %s" % str(landmarks.shape))
        if landmarks.shape[0] != self._num_landmarks:
            raise MalformedFrame("expected %d landmarks, got %d"
                                 % (self._num_landmarks, landmarks.shape[0]))
        if not np.all(np.isfinite(landmarks)):
            raise MalformedFrame("non-finite landmark coordinates")

        # C-order ravel keeps (x, y, z) per landmark in landmark order
        return landmarks.reshape(self._feature_dim).copy()

    def extract_batch(self, frames):
        """Extract features for several frames.

        Args:
            frames: iterable of LandmarkFrame or (21, 3) arrays

        Returns:
            np.ndarray of shape (N, 63)
        """
        frames = list(frames)
        out = np.zeros((len(frames), self._feature_dim), dtype=np.float64)
        for i, frame in enumerate(frames):
            out[i] = self.extract(frame)
        return out


def to_feature_vector(frame):
    """Module-level shortcut for the default 21-landmark extractor."""
    return _DEFAULT_EXTRACTOR.extract(frame)


_DEFAULT_EXTRACTOR = LandmarkFeatureExtractor()

