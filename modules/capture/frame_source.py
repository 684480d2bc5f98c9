"""
Readers for recorded landmark streams, used for offline replay.

Supported files:
    .jsonl  one video frame per line: ``[]`` (no hand), a 21×3 list (one
            hand) or a list of 21×3 lists (several hands); objects of the
            form ``{"hands": [...]}`` are accepted too
    .json   a list of such frames
    .npy    array of shape (N, 21, 3), one hand per frame

Each reader yields one list of LandmarkFrame per video frame.
"""

import json
import logging
import os

import numpy as np

from core.types import COORDS_PER_LANDMARK, LandmarkFrame

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".jsonl", ".json", ".npy")


def _is_point(value):
    return (isinstance(value, (list, tuple)) and len(value) == COORDS_PER_LANDMARK
            and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value))


def _is_point_dict(value):
    return isinstance(value, dict) and all(k in value for k in ("x", "y", "z"))


def _to_hand(raw):
    if raw and all(_is_point_dict(p) for p in raw):
        raw = [[p["x"], p["y"], p["z"]] for p in raw]
    return LandmarkFrame.from_array(raw)


def parse_frame(raw):
    """Turn one decoded frame record into a list of LandmarkFrame.

    Raises:
        ValueError: if the record is not a recognisable hand list
    """
    if isinstance(raw, dict):
        raw = raw.get("hands", [])
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError("frame must be a list, got %s" % type(raw).__name__)
    if not raw:
        return []
    # A single hand: list of points
    if all(_is_point(p) or _is_point_dict(p) for p in raw):
        return [_to_hand(raw)]
    return [_to_hand(hand) for hand in raw]


def iter_jsonl(path):
    # Bad bytes decode to U+FFFD and fail on their own line
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                yield parse_frame(json.loads(line))
            except ValueError as e:
                logger.warning("%s:%d: dropping unreadable frame (%s)", path, line_no, e)


def iter_json(path):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("frames", [])
    for idx, raw in enumerate(data):
        try:
            yield parse_frame(raw)
        except ValueError as e:
            logger.warning("%s[%d]: dropping unreadable frame (%s)", path, idx, e)


def iter_npy(path):
    arr = np.load(path, allow_pickle=False)
    if arr.ndim != 3 or arr.shape[2] != COORDS_PER_LANDMARK:
        raise ValueError("Expected (N, 21, 3) landmarks in %s, got %s" % (path, arr.shape))
    for hand in arr:
        yield [LandmarkFrame.from_array(hand)]


def open_stream(path):
    """Return an iterator of per-frame hand lists for a recorded file."""
    path = os.fspath(path)
    if not os.path.isfile(path):
        raise FileNotFoundError("Landmark stream not found: %s" % path)
    ext = os.path.splitext(path)[1].lower()
    if ext == ".jsonl":
        return iter_jsonl(path)
    if ext == ".json":
        return iter_json(path)
    if ext == ".npy":
        return iter_npy(path)
    raise ValueError("Unsupported landmark stream %s (expected one of %s)"
                     % (path, ", ".join(SUPPORTED_EXTENSIONS)))
