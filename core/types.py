"""
Shared domain types for the fingerspelling inference core.

Centralizes constants, landmark containers and the Prediction result so
models/ and modules/ can import them without circular dependencies.
"""

import time
from enum import IntEnum
from typing import Iterable, List, NamedTuple, Optional, Tuple

import numpy as np


# =============================================================================
# Constants
# =============================================================================

NUM_LANDMARKS = 21
COORDS_PER_LANDMARK = 3
FEATURE_DIM = NUM_LANDMARKS * COORDS_PER_LANDMARK  # 63
NUM_CLASSES = 28  # A-Z, DEL, SPACE

NO_SYMBOL = "-"


class LandmarkIndex(IntEnum):
    """Hand landmark indices following the MediaPipe Hands convention.

    Feature vectors are flattened in this order; a model trained on one
    order cannot be fed frames in another.
    """
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


# =============================================================================
# Landmarks
# =============================================================================

class Landmark(NamedTuple):
    """A single landmark in world space (meters, relative to the hand)."""
    x: float
    y: float
    z: float


class LandmarkFrame:
    """One hand's landmarks for one video frame.

    The container does not enforce the landmark count: frames arrive from
    an external pose estimator and are validated when features are
    extracted, so a short frame can be skipped instead of raising here.
    """

    __slots__ = ("landmarks", "handedness", "timestamp")

    def __init__(self, landmarks: Iterable[Landmark], handedness: str = "unknown",
                 timestamp: Optional[float] = None):
        self.landmarks: Tuple[Landmark, ...] = tuple(
            lm if isinstance(lm, Landmark) else Landmark(*lm) for lm in landmarks
        )
        self.handedness = handedness
        self.timestamp = time.time() if timestamp is None else timestamp

    @classmethod
    def from_array(cls, array, **kwargs) -> "LandmarkFrame":
        """Build a frame from an ``(N, 3)`` array-like of coordinates."""
        arr = np.asarray(array, dtype=np.float64)
        if arr.size == 0:
            return cls([], **kwargs)
        if arr.ndim != 2 or arr.shape[1] != COORDS_PER_LANDMARK:
            raise ValueError("Expected (N, 3) landmarks, got %s" % str(arr.shape))
        return cls((Landmark(float(x), float(y), float(z)) for x, y, z in arr), **kwargs)

    @classmethod
    def from_mediapipe(cls, hand_landmarks, **kwargs) -> "LandmarkFrame":
        """Build a frame from a MediaPipe landmark list.

        Accepts either a ``LandmarkList`` proto (``.landmark`` attribute, as
        returned in ``multi_hand_world_landmarks``) or a plain sequence of
        objects exposing ``x``, ``y`` and ``z`` (Tasks API results).
        """
        points = getattr(hand_landmarks, "landmark", hand_landmarks)
        return cls((Landmark(float(p.x), float(p.y), float(p.z)) for p in points), **kwargs)

    def to_numpy(self) -> np.ndarray:
        """Landmarks as a ``(N, 3)`` float64 array."""
        if not self.landmarks:
            return np.zeros((0, COORDS_PER_LANDMARK), dtype=np.float64)
        return np.array(self.landmarks, dtype=np.float64)

    def get(self, index: LandmarkIndex) -> Landmark:
        return self.landmarks[index]

    @property
    def is_complete(self) -> bool:
        return len(self.landmarks) == NUM_LANDMARKS

    def __len__(self):
        return len(self.landmarks)

    def __iter__(self):
        return iter(self.landmarks)

    def __repr__(self):
        return "LandmarkFrame(%d landmarks, %s)" % (len(self.landmarks), self.handedness)


# =============================================================================
# Results
# =============================================================================

class Prediction:
    """A decoded symbol with its softmax confidence.

    ``class_index`` is None for the "no symbol" sentinel.
    """

    __slots__ = ("symbol", "confidence", "class_index", "timestamp")

    def __init__(self, symbol: str, confidence: float,
                 class_index: Optional[int] = None):
        self.symbol = symbol
        self.confidence = confidence
        self.class_index = class_index
        self.timestamp = time.time()

    @classmethod
    def empty(cls) -> "Prediction":
        """The "no symbol" sentinel shown when nothing was recognised."""
        return cls(NO_SYMBOL, 0.0)

    @property
    def is_empty(self) -> bool:
        return self.class_index is None

    def as_tuple(self) -> Tuple[str, float]:
        return (self.symbol, self.confidence)

    def __eq__(self, other):
        if not isinstance(other, Prediction):
            return NotImplemented
        return (self.symbol, self.confidence, self.class_index) == \
            (other.symbol, other.confidence, other.class_index)

    def __hash__(self):
        return hash((self.symbol, self.confidence, self.class_index))

    def __repr__(self):
        return "Prediction(%s, conf=%.3f)" % (self.symbol, self.confidence)


def frames_from_hands(hands) -> List[LandmarkFrame]:
    """Normalise a per-video-frame hand list to LandmarkFrame objects."""
    if hands is None:
        return []
    if isinstance(hands, LandmarkFrame):
        return [hands]
    frames = []
    for hand in hands:
        if isinstance(hand, LandmarkFrame):
            frames.append(hand)
        else:
            frames.append(LandmarkFrame.from_array(hand))
    return frames
