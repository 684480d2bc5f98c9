"""
Synchronous event bus between the frame pipeline and its presentation
listeners (text label, confidence bar, transcript writer).

Listeners run in the emitting thread, so a slow listener delays the next
frame; keep them to cheap display updates.

Usage:
    bus = EventBus()
    unsubscribe = bus.subscribe(Events.PREDICTION_MADE, update_label)
    bus.emit(Events.PREDICTION_MADE, symbol="A", confidence=0.97, frame_id=1)
"""

import bisect
import itertools
import logging
import threading
import time
from collections import deque, namedtuple
from typing import Callable

logger = logging.getLogger(__name__)

# sort_key = (-priority, subscription sequence number)
_Listener = namedtuple("_Listener", ["sort_key", "callback"])

EventRecord = namedtuple("EventRecord", ["event", "time", "data_keys", "delivered"])


def _callback_name(callback):
    return getattr(callback, "__qualname__", None) or repr(callback)


class EventBus:
    """Publish/subscribe bus, one instance per pipeline.

    Listeners are called highest priority first and, within a priority, in
    subscription order. A listener that raises is logged and counted; the
    remaining listeners still receive the event.
    """

    def __init__(self, max_history=100):
        self._listeners = {}  # event_name -> sorted [_Listener]
        self._lock = threading.Lock()
        self._sequence = itertools.count()
        self._history = deque(maxlen=max_history)
        self._enabled = True
        self._failures = 0

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register ``callback(**data)`` for ``event_name``.

        Args:
            event_name: Event to listen for (see :class:`Events`)
            callback: Called with the keyword arguments given to emit()
            priority: Higher priority listeners run first (default 0)

        Returns:
            A no-argument function that removes this subscription
        """
        entry = _Listener((-priority, next(self._sequence)), callback)
        with self._lock:
            bisect.insort(self._listeners.setdefault(event_name, []), entry)
        logger.debug("Subscribed %s to '%s' (priority=%d)",
                     _callback_name(callback), event_name, priority)

        def unsubscribe():
            with self._lock:
                entries = self._listeners.get(event_name, [])
                if entry in entries:
                    entries.remove(entry)

        return unsubscribe

    def unsubscribe(self, event_name: str, callback: Callable):
        """Remove every subscription of ``callback`` to ``event_name``."""
        with self._lock:
            entries = self._listeners.get(event_name)
            if entries:
                entries[:] = [e for e in entries if e.callback is not callback]

    def emit(self, event_name: str, **data) -> int:
        """Deliver an event to its listeners.

        Returns:
            Number of listeners that handled the event without raising
        """
        if not self._enabled:
            return 0

        with self._lock:
            listeners = tuple(self._listeners.get(event_name, ()))

        delivered = 0
        for entry in listeners:
            try:
                entry.callback(**data)
            except Exception as e:
                self._failures += 1
                logger.error("Listener %s failed on '%s': %s",
                             _callback_name(entry.callback), event_name, e)
            else:
                delivered += 1

        self._history.append(EventRecord(event_name, time.time(), tuple(sorted(data)), delivered))
        return delivered

    def set_enabled(self, enabled: bool):
        self._enabled = bool(enabled)

    def clear(self, event_name: str = None):
        """Remove all listeners, or only those of ``event_name``."""
        with self._lock:
            if event_name:
                self._listeners.pop(event_name, None)
            else:
                self._listeners.clear()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._listeners.values())

    @property
    def failed_deliveries(self) -> int:
        """Listener calls that raised since the bus was created."""
        return self._failures

    def get_history(self, last_n: int = 10) -> list:
        """Most recent EventRecords, oldest first."""
        if last_n <= 0:
            return []
        return list(self._history)[-last_n:]


# =============================================================================
# Standard Event Names
# =============================================================================

class Events:
    """Event names emitted by FramePipeline and the CLI."""

    MODEL_LOADED = "model_loaded"         # artifact
    PREDICTION_MADE = "prediction_made"   # symbol, confidence, frame_id
    FRAME_SKIPPED = "frame_skipped"       # frame_id, symbol, confidence (malformed landmarks)
    HAND_LOST = "hand_lost"               # frame_id, symbol, confidence shown instead
    STREAM_FINISHED = "stream_finished"   # frames, report
