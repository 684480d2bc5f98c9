"""
Shared fixtures: small synthetic model artifacts and landmark frames.
"""

import json
import logging
import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.types import FEATURE_DIM, NUM_CLASSES, NUM_LANDMARKS, LandmarkFrame  # noqa: E402
from models.artifact import ModelArtifact  # noqa: E402
from modules.utils.config import Config  # noqa: E402


def make_blob(h1=8, h2=6, seed=0):
    """Random but well-formed artifact blob in the canonical layout."""
    rng = np.random.default_rng(seed)
    return {
        "scaler": {
            "mean": rng.normal(0.0, 0.05, FEATURE_DIM).tolist(),
            "scale": rng.uniform(0.01, 0.1, FEATURE_DIM).tolist(),
        },
        "fc1": {"weights": rng.normal(0, 0.3, (h1, FEATURE_DIM)).tolist(),
                "bias": rng.normal(0, 0.1, h1).tolist()},
        "fc2": {"weights": rng.normal(0, 0.3, (h2, h1)).tolist(),
                "bias": rng.normal(0, 0.1, h2).tolist()},
        "fc3": {"weights": rng.normal(0, 0.3, (NUM_CLASSES, h2)).tolist(),
                "bias": rng.normal(0, 0.1, NUM_CLASSES).tolist()},
    }


def make_biased_blob(class_index=4, strength=20.0):
    """Identity scaler, single-unit hidden layers, strong bias on one class."""
    bias = [0.0] * NUM_CLASSES
    bias[class_index] = strength
    return {
        "scaler": {"mean": [0.0] * FEATURE_DIM, "scale": [1.0] * FEATURE_DIM},
        "fc1": {"weights": [[0.0] * FEATURE_DIM], "bias": [0.0]},
        "fc2": {"weights": [[1.0]], "bias": [0.0]},
        "fc3": {"weights": [[0.0] for _ in range(NUM_CLASSES)], "bias": bias},
    }


def to_legacy_layout(blob):
    """Flat layout: model.fc1_w / model.fc1_b / ..."""
    model = {}
    for name in ("fc1", "fc2", "fc3"):
        model[name + "_w"] = blob[name]["weights"]
        model[name + "_b"] = blob[name]["bias"]
    return {"scaler": blob["scaler"], "model": model}


@pytest.fixture
def blob():
    return make_blob()


@pytest.fixture
def artifact(blob):
    return ModelArtifact.from_dict(blob)


@pytest.fixture
def biased_artifact():
    return ModelArtifact.from_dict(make_biased_blob())


@pytest.fixture
def artifact_file(tmp_path, blob):
    path = tmp_path / "asl_model.json"
    path.write_text(json.dumps(blob))
    return path


@pytest.fixture
def zero_frame():
    return LandmarkFrame.from_array(np.zeros((NUM_LANDMARKS, 3)))


@pytest.fixture
def random_frame():
    rng = np.random.default_rng(7)
    return LandmarkFrame.from_array(rng.normal(0.0, 0.05, (NUM_LANDMARKS, 3)))


@pytest.fixture
def restore_logging(monkeypatch):
    """Undo root-logger changes made by setup_logging()."""
    root = logging.getLogger()
    level = root.level
    monkeypatch.setattr(root, "handlers", [])
    yield
    for handler in root.handlers:
        handler.close()
    root.setLevel(level)


@pytest.fixture(autouse=True)
def reset_config():
    yield
    Config.reset()
