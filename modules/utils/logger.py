"""
Logging setup plus a recorder for recognised symbols.
"""

import os
import logging
import logging.handlers
import time
from collections import deque
from functools import wraps


CONSOLE_FORMAT = "%(asctime)s  %(levelname)-5s  %(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)-7s] %(name)-28s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure the root logger: console always, rotating file optionally."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=int(max_size_mb * 1024 * 1024),
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    return root_logger


def setup_logging_from_config(section):
    """Apply the ``logging`` config section."""
    section = section or {}
    return setup_logging(
        level=section.get("level") or "INFO",
        log_file=section.get("file"),
        max_size_mb=section.get("max_size_mb", 10),
        backup_count=section.get("backup_count", 3),
    )


class PredictionLogger:
    """Records displayed symbols for the replay log and session summary.

    Only symbol changes are logged at INFO; a steady sign held for many
    frames would otherwise flood the console at frame rate.
    """

    def __init__(self, max_history=1000):
        self.logger = logging.getLogger("prediction_events")
        self._history = deque(maxlen=max_history)
        self._last_symbol = None
        self._total = 0
        self._transcript = []

    def log_prediction(self, symbol, confidence, frame_id=None, latency_ms=None):
        entry = {
            "timestamp": time.time(),
            "frame_id": frame_id,
            "symbol": symbol,
            "confidence": confidence,
            "latency_ms": latency_ms,
        }
        self._history.append(entry)
        self._total += 1
        if symbol != self._last_symbol:
            self._transcript.append(symbol)
            self.logger.info(
                "Symbol: %-6s | Confidence: %.2f | Frame: %s | Latency: %s",
                symbol,
                confidence,
                "-" if frame_id is None else frame_id,
                "%.2fms" % latency_ms if latency_ms is not None else "N/A",
            )
        self._last_symbol = symbol

    def get_history(self, last_n=None):
        history = list(self._history)
        if last_n:
            return history[-last_n:]
        return history

    def transcript(self):
        """Symbols in the order a viewer saw them change, for the whole session."""
        return list(self._transcript)

    @property
    def total_predictions(self):
        return self._total


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
