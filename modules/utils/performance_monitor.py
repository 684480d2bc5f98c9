"""
Per-frame latency and FPS tracking against the frame budget.

A 30 FPS camera leaves ~33 ms per frame for everything downstream of pose
estimation; the monitor keeps rolling windows of stage latencies so a
replay or benchmark can tell whether predict() fits inside that budget.
"""

import time
import threading
import logging
from collections import deque
from contextlib import contextmanager

import numpy as np

logger = logging.getLogger(__name__)

STAGE_NAMES = ("inference", "total")


class _Window:
    """Last ``size`` samples of one measurement."""

    __slots__ = ("_samples",)

    def __init__(self, size):
        self._samples = deque(maxlen=size)

    def add(self, value):
        self._samples.append(value)

    def mean(self):
        if not self._samples:
            return 0.0
        return sum(self._samples) / len(self._samples)

    def percentile(self, q):
        if not self._samples:
            return 0.0
        return float(np.percentile(np.fromiter(self._samples, dtype=np.float64), q))

    def max(self):
        return max(self._samples) if self._samples else 0.0

    def clear(self):
        self._samples.clear()

    def __len__(self):
        return len(self._samples)


class PerformanceMonitor:
    """Rolling FPS, per-stage latency (mean/p95/max) and budget overruns."""

    def __init__(self, window_size=100, target_fps=30):
        self._window_size = window_size
        self._target_fps = target_fps
        self._lock = threading.Lock()

        self._intervals = _Window(window_size)
        self._last_tick = None
        self._stages = {name: _Window(window_size) for name in STAGE_NAMES}

        self._frame_count = 0
        self._dropped_frames = 0
        self._over_budget = 0
        self._start_time = time.time()

    @property
    def frame_budget_ms(self) -> float:
        """Milliseconds available per frame at ``target_fps``."""
        return 1000.0 / self._target_fps if self._target_fps else float("inf")

    @contextmanager
    def measure(self, stage_name: str):
        """Time the enclosed block as ``stage_name``, even if it raises."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(stage_name, (time.perf_counter() - start) * 1000)

    def record(self, stage_name: str, elapsed_ms: float):
        """Add one latency sample; ``total`` samples are checked against the budget."""
        with self._lock:
            window = self._stages.get(stage_name)
            if window is None:
                window = self._stages[stage_name] = _Window(self._window_size)
            window.add(elapsed_ms)
            if stage_name == "total" and elapsed_ms > self.frame_budget_ms:
                self._over_budget += 1

    def tick(self):
        """Mark the end of one frame."""
        now = time.perf_counter()
        with self._lock:
            if self._last_tick is not None:
                self._intervals.add(now - self._last_tick)
            self._last_tick = now
            self._frame_count += 1

    def record_drop(self):
        """Count a frame that produced no prediction."""
        with self._lock:
            self._dropped_frames += 1

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def fps(self) -> float:
        with self._lock:
            if len(self._intervals) < 2:
                return 0.0
            interval = self._intervals.mean()
        return 1.0 / interval if interval > 0 else 0.0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def total_latency_ms(self) -> float:
        return self.get_stage_latency("total")

    def get_stage_latency(self, stage_name: str) -> float:
        """Mean latency of a stage over the window, 0.0 if never measured."""
        with self._lock:
            window = self._stages.get(stage_name)
            return window.mean() if window is not None else 0.0

    def get_stage_summary(self, stage_name: str) -> dict:
        with self._lock:
            window = self._stages.get(stage_name) or _Window(1)
            return {
                "mean": window.mean(),
                "p95": window.percentile(95),
                "max": window.max(),
                "samples": len(window),
            }

    def get_all_latencies(self) -> dict:
        with self._lock:
            return {name: window.mean() for name, window in self._stages.items()}

    @property
    def within_budget(self) -> bool:
        """True when the p95 frame latency fits the frame budget."""
        return self.get_stage_summary("total")["p95"] <= self.frame_budget_ms

    def get_report(self) -> dict:
        summaries = {name: self.get_stage_summary(name) for name in list(self._stages)}
        return {
            "fps": round(self.fps, 1),
            "total_frames": self._frame_count,
            "dropped_frames": self._dropped_frames,
            "drop_rate": round(self._dropped_frames / max(self._frame_count, 1) * 100, 2),
            "frame_budget_ms": round(self.frame_budget_ms, 2),
            "over_budget_frames": self._over_budget,
            "within_budget": self.within_budget,
            "uptime_seconds": round(time.time() - self._start_time, 1),
            "latencies_ms": {k: round(s["mean"], 3) for k, s in summaries.items()},
            "p95_ms": {k: round(s["p95"], 3) for k, s in summaries.items()},
            "max_ms": {k: round(s["max"], 3) for k, s in summaries.items()},
        }

    def print_report(self):
        report = self.get_report()
        logger.info("=" * 60)
        logger.info("PERFORMANCE REPORT")
        logger.info("=" * 60)
        logger.info("FPS:            %.1f", report["fps"])
        logger.info("Frames:         %d (%d skipped, %.2f%%)",
                    report["total_frames"], report["dropped_frames"], report["drop_rate"])
        logger.info("Frame budget:   %.2f ms, %d frames over, p95 %s",
                    report["frame_budget_ms"], report["over_budget_frames"],
                    "within budget" if report["within_budget"] else "OVER BUDGET")
        logger.info("-" * 60)
        logger.info("  %-12s %10s %10s %10s", "stage", "mean ms", "p95 ms", "max ms")
        for stage, mean in report["latencies_ms"].items():
            logger.info("  %-12s %10.3f %10.3f %10.3f",
                        stage, mean, report["p95_ms"][stage], report["max_ms"][stage])
        logger.info("=" * 60)

    def reset(self):
        with self._lock:
            self._intervals.clear()
            self._last_tick = None
            for window in self._stages.values():
                window.clear()
            self._frame_count = 0
            self._dropped_frames = 0
            self._over_budget = 0
            self._start_time = time.time()
