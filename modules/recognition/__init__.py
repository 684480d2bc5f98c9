"""Per-frame symbol prediction."""
from .frame_predictor import FramePredictor, PredictorState

__all__ = ["FramePredictor", "PredictorState"]
