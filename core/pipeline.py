"""
Frame-driven driver around the FramePredictor.

The pose estimator hands over zero or one hand per video frame; the pipeline
runs the predictor, decides what the display should show and publishes the
outcome on the event bus. Frames are handled strictly in arrival order and
none are dropped here; coalescing under load belongs to whoever delivers
them.

Architecture:
    frame source -> FramePipeline.process -> FramePredictor.predict
    -> EventBus (presentation listeners) + PredictionLogger
"""

import time
import logging

from core.events import EventBus, Events
from core.types import Prediction, frames_from_hands
from modules.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)


class PipelineResult:
    """Outcome of one video frame."""

    __slots__ = (
        "frame_id", "hand_detected", "skipped", "prediction",
        "displayed", "latency_ms", "timestamp",
    )

    def __init__(self, frame_id):
        self.frame_id = frame_id
        self.hand_detected = False
        self.skipped = False
        self.prediction = None   # fresh Prediction for this frame, if any
        self.displayed = Prediction.empty()
        self.latency_ms = 0.0
        self.timestamp = time.time()

    def __repr__(self):
        return "PipelineResult(#%d, %s%s)" % (
            self.frame_id, self.displayed, ", skipped" if self.skipped else "",
        )


class FramePipeline:
    """Feeds landmark frames to a FramePredictor one video frame at a time.

    Per-frame problems (malformed landmarks, failing listeners) never stop
    the loop. ModelNotLoaded propagates: running without a model is a
    setup error, not a bad frame.
    """

    def __init__(self, predictor, event_bus=None, performance_monitor=None,
                 prediction_logger=None, config=None):
        """
        Args:
            predictor: FramePredictor (READY before the first frame)
            event_bus: EventBus for presentation listeners
            performance_monitor: PerformanceMonitor for latency tracking
            prediction_logger: optional PredictionLogger
            config: ``display`` section from config.yaml
        """
        config = config or {}
        self._predictor = predictor
        self._bus = event_bus or EventBus()
        self._perf = performance_monitor or PerformanceMonitor()
        self._prediction_logger = prediction_logger

        # Default: blank the label while no hand is visible
        self._hold_last = bool(config.get("hold_last_on_hand_lost", False))

        self._frame_count = 0
        self._skip_count = 0
        self._hand_lost_count = 0

    @property
    def event_bus(self):
        return self._bus

    @property
    def performance(self):
        return self._perf

    # ------------------------------------------------------------------
    # Per-frame processing
    # ------------------------------------------------------------------

    def process(self, hands) -> PipelineResult:
        """Handle one video frame.

        Args:
            hands: sequence of detected hands for this frame (LandmarkFrame
                or (21, 3) array-like each); empty or None when no hand
                was detected. Only the first hand is classified.

        Returns:
            PipelineResult
        """
        self._frame_count += 1
        result = PipelineResult(self._frame_count)
        start = time.perf_counter()

        try:
            frames = frames_from_hands(hands)
        except (TypeError, ValueError) as e:
            logger.debug("Frame %d: unreadable hand data: %s", result.frame_id, e)
            frames = None

        if frames is None:
            self._on_skipped(result)
        elif not frames:
            self._on_hand_lost(result)
        else:
            if len(frames) > 1:
                logger.debug("Frame %d: %d hands, classifying the first",
                             result.frame_id, len(frames))
            result.hand_detected = True
            with self._perf.measure("inference"):
                prediction = self._predictor.predict(frames[0])

            if prediction.is_empty:
                self._on_skipped(result)
            else:
                result.prediction = prediction
                result.displayed = prediction

        result.latency_ms = (time.perf_counter() - start) * 1000
        self._perf.record("total", result.latency_ms)
        self._perf.tick()

        if result.prediction is not None:
            self._bus.emit(
                Events.PREDICTION_MADE,
                symbol=result.prediction.symbol,
                confidence=result.prediction.confidence,
                frame_id=result.frame_id,
            )
            if self._prediction_logger is not None:
                self._prediction_logger.log_prediction(
                    result.prediction.symbol, result.prediction.confidence,
                    frame_id=result.frame_id, latency_ms=result.latency_ms,
                )

        return result

    def _on_skipped(self, result):
        # Bad frame: keep showing whatever was shown for the last good one
        self._skip_count += 1
        self._perf.record_drop()
        result.skipped = True
        result.displayed = self._predictor.last_prediction
        self._bus.emit(
            Events.FRAME_SKIPPED,
            frame_id=result.frame_id,
            symbol=result.displayed.symbol,
            confidence=result.displayed.confidence,
        )

    def _on_hand_lost(self, result):
        self._hand_lost_count += 1
        if self._hold_last:
            result.displayed = self._predictor.last_prediction
        else:
            result.displayed = Prediction.empty()
        self._bus.emit(
            Events.HAND_LOST,
            frame_id=result.frame_id,
            symbol=result.displayed.symbol,
            confidence=result.displayed.confidence,
        )

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    def run(self, stream, max_frames=None, should_stop=None):
        """Process an iterable of per-frame hand lists in order.

        Args:
            stream: iterable of per-frame hand lists
            max_frames: stop after this many frames
            should_stop: callable checked before each frame; True ends the run

        Returns:
            list of PipelineResult, one per consumed frame
        """
        results = []
        for hands in stream:
            if should_stop is not None and should_stop():
                logger.info("Stream stopped after %d frames", len(results))
                break
            if max_frames is not None and len(results) >= max_frames:
                break
            results.append(self.process(hands))

        self._bus.emit(Events.STREAM_FINISHED, frames=len(results),
                       report=self._perf.get_report())
        logger.info("Stream finished: %d frames, %d skipped, %d without hand",
                    len(results), self._skip_count, self._hand_lost_count)
        return results

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def skip_count(self) -> int:
        return self._skip_count

    @property
    def hand_lost_count(self) -> int:
        return self._hand_lost_count
