"""
Tests for Performance Module
=============================
"""

import pytest
import time
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.utils.performance_monitor import PerformanceMonitor


class TestPerformanceMonitor:
    """Test suite for PerformanceMonitor class."""

    @pytest.fixture
    def monitor(self):
        """Create performance monitor."""
        return PerformanceMonitor(window_size=5, target_fps=30)

    def test_fps_calculation(self, monitor):
        """Test FPS calculation."""
        # Simulate frames at ~30 FPS
        for _ in range(10):
            time.sleep(0.033)
            monitor.tick()

        fps = monitor.fps
        assert 15 < fps < 35

    def test_fps_needs_two_intervals(self, monitor):
        monitor.tick()
        monitor.tick()
        assert monitor.fps == 0.0

    def test_stage_timing(self, monitor):
        """Test per-stage timing."""
        with monitor.measure("inference"):
            time.sleep(0.01)

        assert monitor.get_stage_latency("inference") >= 9

    def test_measure_records_on_error(self, monitor):
        """Test that a failing stage is still timed."""
        with pytest.raises(RuntimeError):
            with monitor.measure("inference"):
                raise RuntimeError("boom")
        assert monitor.get_stage_latency("inference") > 0

    def test_rolling_window(self, monitor):
        """Test that only the last window_size samples count."""
        for value in (100, 100, 1, 1, 1, 1, 1):
            monitor.record("total", value)
        assert monitor.total_latency_ms == pytest.approx(1.0)

    def test_custom_stage(self, monitor):
        monitor.record("decode", 2.0)
        assert monitor.get_all_latencies()["decode"] == 2.0

    def test_frame_budget(self, monitor):
        """Test over-budget counting against 1000 / target_fps."""
        assert monitor.frame_budget_ms == pytest.approx(33.333, rel=1e-3)
        monitor.record("total", 10.0)
        monitor.record("total", 50.0)
        assert monitor.get_report()["over_budget_frames"] == 1

    def test_stage_summary(self, monitor):
        """Test mean, p95 and max over the window."""
        for value in (1.0, 2.0, 3.0, 4.0, 10.0):
            monitor.record("inference", value)
        summary = monitor.get_stage_summary("inference")

        assert summary["mean"] == pytest.approx(4.0)
        assert summary["max"] == 10.0
        assert 4.0 < summary["p95"] <= 10.0
        assert summary["samples"] == 5

    def test_unknown_stage_summary(self, monitor):
        assert monitor.get_stage_summary("missing") == {
            "mean": 0.0, "p95": 0.0, "max": 0.0, "samples": 0,
        }

    def test_within_budget(self, monitor):
        """Test the p95 verdict against the frame budget."""
        assert monitor.within_budget
        for _ in range(5):
            monitor.record("total", 40.0)
        assert not monitor.within_budget
        assert monitor.get_report()["within_budget"] is False

    def test_report_generation(self, monitor):
        """Test report dict generation."""
        monitor.tick()
        monitor.tick()
        monitor.record_drop()
        report = monitor.get_report()

        assert report["total_frames"] == 2
        assert report["dropped_frames"] == 1
        assert report["drop_rate"] == 50.0
        assert set(report["latencies_ms"]) >= {"inference", "total"}

    def test_print_report(self, monitor, caplog):
        import logging
        caplog.set_level(logging.INFO)
        monitor.print_report()
        assert "PERFORMANCE REPORT" in caplog.text

    def test_reset_clears_state(self, monitor):
        """Test that reset() clears counters and windows."""
        monitor.tick()
        monitor.record("total", 5.0)
        monitor.record_drop()
        monitor.reset()

        assert monitor.frame_count == 0
        assert monitor.total_latency_ms == 0.0
        assert monitor.get_report()["dropped_frames"] == 0


class TestPerformanceTargets:
    """Test that inference meets the per-frame budget."""

    def test_predict_under_frame_budget(self, artifact, random_frame):
        """Test average predict() latency well inside a 30 FPS frame."""
        from modules.recognition import FramePredictor

        predictor = FramePredictor(artifact)
        monitor = PerformanceMonitor(window_size=50)
        for _ in range(50):
            with monitor.measure("inference"):
                predictor.predict(random_frame)

        assert monitor.get_stage_latency("inference") < monitor.frame_budget_ms
