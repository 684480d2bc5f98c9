#!/usr/bin/env python3
"""
Fingerspelling inference core - command line entry point.

Loads the model artifact once, then drives the FramePredictor from a
recorded landmark stream, a synthetic benchmark, or just validates the
artifact.

Usage:
    python main.py --mode replay --frames session.jsonl
    python main.py --mode benchmark --iterations 1000
    python main.py --mode inspect --artifact models/weights/asl_model.json
"""

import sys
import os
import json
import signal
import argparse
import logging

import numpy as np

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from core.errors import ArtifactFormatError, ShapeMismatch
from core.events import EventBus, Events
from core.pipeline import FramePipeline
from core.types import NUM_LANDMARKS, LandmarkFrame
from models.artifact import load_artifact
from modules.capture.frame_source import open_stream
from modules.recognition.frame_predictor import FramePredictor
from modules.utils.config import Config
from modules.utils.logger import PredictionLogger, setup_logging_from_config
from modules.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)


class FingerspellApp:
    """Wires config, predictor, pipeline and reporting for one CLI run."""

    def __init__(self, config: Config, artifact_path: str):
        self._config = config
        self._artifact_path = artifact_path
        self._running = False

        self._bus = EventBus()
        self._perf = PerformanceMonitor(
            window_size=config.get("performance.window_size"),
            target_fps=config.get("performance.target_fps"),
        )
        self._prediction_logger = PredictionLogger()
        self._predictor = FramePredictor()
        self._pipeline = None

    def load(self):
        """Load the artifact; load errors propagate to main()."""
        artifact = load_artifact(self._artifact_path)
        self._predictor.load(artifact)
        self._pipeline = FramePipeline(
            self._predictor,
            event_bus=self._bus,
            performance_monitor=self._perf,
            prediction_logger=self._prediction_logger,
            config=self._config.display,
        )
        self._bus.emit(Events.MODEL_LOADED, artifact=artifact)
        return artifact

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def run_inspect(self):
        artifact = self.load()
        print(json.dumps(artifact.describe(), indent=2))

    def run_replay(self, frames_path, max_frames=None, show_all=False):
        """Replay a recorded stream and print what the display would show."""
        self.load()

        def _print_displayed(symbol, confidence, frame_id, **_):
            print("%6d  %-6s %5.1f%%" % (frame_id, symbol, confidence * 100))

        if show_all:
            self._bus.subscribe(Events.PREDICTION_MADE, _print_displayed)
            self._bus.subscribe(Events.HAND_LOST, _print_displayed)
            self._bus.subscribe(Events.FRAME_SKIPPED, _print_displayed)

        self._running = True
        results = self._pipeline.run(open_stream(frames_path), max_frames=max_frames,
                                     should_stop=lambda: not self._running)

        transcript = self._prediction_logger.transcript()
        logger.info("Replayed %d frames, %d predictions, %d skipped",
                    len(results), self._prediction_logger.total_predictions,
                    self._pipeline.skip_count)
        print("Transcript: %s" % " ".join(transcript))
        self._report()
        return results

    def run_benchmark(self, iterations=1000, seed=0):
        """Time predict() on synthetic hands against the frame budget."""
        self.load()
        logger.info("=== BENCHMARK MODE ===")
        rng = np.random.default_rng(seed)
        # Roughly hand-sized world coordinates (meters around the wrist)
        frames = [LandmarkFrame.from_array(rng.normal(0.0, 0.05, size=(NUM_LANDMARKS, 3)))
                  for _ in range(min(iterations, 256))]

        self._running = True
        for i in range(iterations):
            if not self._running:
                break
            self._pipeline.process([frames[i % len(frames)]])
            if i and i % 250 == 0:
                logger.info("Benchmark progress: %d/%d (%.3f ms/frame)",
                            i, iterations, self._perf.get_stage_latency("inference"))
        self._report()
        if self._perf.within_budget:
            logger.info("p95 frame latency fits the %.2f ms budget", self._perf.frame_budget_ms)
        else:
            logger.warning("p95 frame latency exceeds the %.2f ms budget", self._perf.frame_budget_ms)
        return self._perf.get_report()

    def _report(self):
        self._perf.print_report()
        stats = self._predictor.stats
        logger.info("Predictor: %d predicted, %d skipped",
                    stats["predicted"], stats["skipped"])

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM by finishing the current frame and stopping."""
        logger.info("Signal %d received, stopping...", signum)
        self._running = False


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Fingerspelling inference core (landmarks -> A-Z / DEL / SPACE)"
    )
    parser.add_argument(
        "--mode", choices=["replay", "benchmark", "inspect"],
        default="replay", help="Operating mode"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml"
    )
    parser.add_argument(
        "--artifact", type=str, default=None,
        help="Model artifact (.json or .js); overrides model.artifact_path"
    )
    parser.add_argument(
        "--frames", type=str, default=None,
        help="Recorded landmark stream (.jsonl, .json or .npy) for replay mode"
    )
    parser.add_argument(
        "--max-frames", type=int, default=None,
        help="Stop replay after this many frames"
    )
    parser.add_argument(
        "--show-all", action="store_true",
        help="Print the displayed symbol for every frame"
    )
    parser.add_argument(
        "--iterations", type=int, default=1000,
        help="Frames to run in benchmark mode"
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Override logging.level"
    )
    parser.add_argument(
        "--log-file", type=str, default=None,
        help="Override logging.file"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    config = Config()
    config.load(config_path=args.config)

    overrides = {}
    if args.log_level:
        overrides["level"] = args.log_level
    if args.log_file:
        overrides["file"] = args.log_file
    if overrides:
        config.update({"logging": overrides})

    setup_logging_from_config(config.logging)

    artifact_path = args.artifact or config.resolve_path(config.get("model.artifact_path"))
    if not artifact_path:
        logger.error("No model artifact given (--artifact or model.artifact_path)")
        return 1

    if args.mode == "replay" and not args.frames:
        logger.error("Replay mode needs --frames")
        return 1

    logger.info("=" * 60)
    logger.info("  FINGERSPELLING INFERENCE CORE")
    logger.info("  Mode: %s", args.mode)
    logger.info("  Artifact: %s", artifact_path)
    logger.info("=" * 60)

    app = FingerspellApp(config, artifact_path)
    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    try:
        if args.mode == "inspect":
            app.run_inspect()
        elif args.mode == "benchmark":
            app.run_benchmark(iterations=args.iterations)
        else:
            app.run_replay(args.frames, max_frames=args.max_frames, show_all=args.show_all)
    except (ShapeMismatch, ArtifactFormatError):
        # load_artifact has already logged the failing field
        return 1
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1
    except ValueError as e:
        # Unsupported or misshapen landmark stream
        logger.error("%s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
