"""
ModelArtifact - immutable container for scaler parameters and layer weights.

The artifact is loaded once at startup and shared read-only by every
prediction. All shapes are checked when the artifact is built, so a corrupt
or mismatched blob fails at load with the offending field named instead of
deep inside a matrix product.

Accepted blob layouts::

    {"scaler": {"mean": [...63], "scale": [...63]},
     "fc1": {"weights": [[...]], "bias": [...]}, "fc2": {...}, "fc3": {...}}

    {"scaler": {...},
     "model": {"fc1_w": [[...]], "fc1_b": [...], ..., "fc3_b": [...]}}

Files may be plain JSON or a JavaScript module that assigns the object to a
constant (``const ASL_MODEL_DATA = {...};``).
"""

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from core.errors import ArtifactFormatError, DegenerateScale, ShapeMismatch
from core.types import FEATURE_DIM, NUM_CLASSES
from modules.utils.logger import log_timing

logger = logging.getLogger(__name__)

LAYER_NAMES = ("fc1", "fc2", "fc3")

_JS_ASSIGNMENT = re.compile(r"^\s*(?:export\s+)?(?:const|let|var)\s+[A-Za-z_$][\w$]*\s*=\s*")


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


def _as_array(value, field: str, ndim: int) -> np.ndarray:
    """Convert raw blob data to a finite float64 array of the given rank."""
    if value is None:
        raise ArtifactFormatError(field, "missing")
    try:
        arr = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ArtifactFormatError(field, "not a rectangular numeric array (%s)" % e)
    if arr.ndim != ndim:
        raise ShapeMismatch(field, "%d-D array" % ndim, "%d-D array %s" % (arr.ndim, arr.shape))
    if arr.size == 0:
        raise ShapeMismatch(field, "non-empty array", "shape %s" % (arr.shape,))
    if not np.all(np.isfinite(arr)):
        bad = np.argwhere(~np.isfinite(arr))[:5].tolist()
        raise ArtifactFormatError(field, "non-finite values at %s" % bad)
    return _frozen(arr)


# =============================================================================
# Artifact parts
# =============================================================================

@dataclass(frozen=True, eq=False)
class ScalerParams:
    """Per-feature standardization parameters (``mean`` and ``scale``).

    Arrays are copied, checked and frozen on construction.
    """
    mean: np.ndarray
    scale: np.ndarray
    name: str = "scaler"

    def __post_init__(self):
        mean = _as_array(self.mean, self.name + ".mean", 1)
        scale = _as_array(self.scale, self.name + ".scale", 1)
        if mean.shape[0] != FEATURE_DIM:
            raise ShapeMismatch(self.name + ".mean", FEATURE_DIM, mean.shape[0])
        if scale.shape[0] != FEATURE_DIM:
            raise ShapeMismatch(self.name + ".scale", FEATURE_DIM, scale.shape[0])
        zeros = np.flatnonzero(scale == 0.0)
        if zeros.size:
            raise DegenerateScale(self.name + ".scale", zeros.tolist())
        object.__setattr__(self, "mean", mean)
        object.__setattr__(self, "scale", scale)

    @classmethod
    def from_dict(cls, d, field: str = "scaler") -> "ScalerParams":
        if not isinstance(d, dict):
            raise ArtifactFormatError(field, "expected an object with mean/scale")
        return cls(mean=d.get("mean"), scale=d.get("scale"), name=field)

    @property
    def size(self) -> int:
        return int(self.mean.shape[0])


@dataclass(frozen=True, eq=False)
class LayerWeights:
    """Weight matrix (rows = outputs, columns = inputs) and bias vector.

    Arrays are copied, checked and frozen on construction.
    """
    weights: np.ndarray
    bias: np.ndarray
    name: str = "layer"

    def __post_init__(self):
        w = _as_array(self.weights, self.name + ".weights", 2)
        b = _as_array(self.bias, self.name + ".bias", 1)
        if w.shape[0] != b.shape[0]:
            raise ShapeMismatch(
                self.name + ".bias", w.shape[0], b.shape[0],
                detail="bias length must equal weight rows",
            )
        object.__setattr__(self, "weights", w)
        object.__setattr__(self, "bias", b)

    @classmethod
    def from_arrays(cls, weights, bias, field: str) -> "LayerWeights":
        return cls(weights=weights, bias=bias, name=field)

    @property
    def rows(self) -> int:
        return int(self.weights.shape[0])

    @property
    def columns(self) -> int:
        return int(self.weights.shape[1])

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.columns)


@dataclass(frozen=True, eq=False)
class ModelArtifact:
    """Scaler parameters plus the three dense layers of the classifier."""
    scaler: ScalerParams
    fc1: LayerWeights
    fc2: LayerWeights
    fc3: LayerWeights
    source: Optional[str] = None

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Check the 63 → h1 → h2 → 28 chain; raises ShapeMismatch."""
        if self.scaler.size != FEATURE_DIM:
            raise ShapeMismatch("scaler.mean", FEATURE_DIM, self.scaler.size)
        if self.fc1.columns != FEATURE_DIM:
            raise ShapeMismatch("fc1.weights", "%d columns" % FEATURE_DIM,
                                "%d columns" % self.fc1.columns)
        if self.fc2.columns != self.fc1.rows:
            raise ShapeMismatch("fc2.weights", "%d columns (fc1 rows)" % self.fc1.rows,
                                "%d columns" % self.fc2.columns)
        if self.fc3.columns != self.fc2.rows:
            raise ShapeMismatch("fc3.weights", "%d columns (fc2 rows)" % self.fc2.rows,
                                "%d columns" % self.fc3.columns)
        if self.fc3.rows != NUM_CLASSES:
            raise ShapeMismatch("fc3.weights", "%d rows" % NUM_CLASSES,
                                "%d rows" % self.fc3.rows)

    @property
    def layers(self) -> Tuple[LayerWeights, LayerWeights, LayerWeights]:
        return (self.fc1, self.fc2, self.fc3)

    @property
    def hidden_sizes(self) -> Tuple[int, int]:
        return (self.fc1.rows, self.fc2.rows)

    @property
    def num_classes(self) -> int:
        return self.fc3.rows

    @property
    def parameter_count(self) -> int:
        return sum(l.weights.size + l.bias.size for l in self.layers)

    def describe(self) -> dict:
        """Summary used by the inspect CLI mode."""
        return {
            "source": self.source,
            "input_dim": self.scaler.size,
            "hidden_sizes": list(self.hidden_sizes),
            "num_classes": self.num_classes,
            "parameters": self.parameter_count,
            "layers": {name: list(layer.shape)
                       for name, layer in zip(LAYER_NAMES, self.layers)},
        }

    # ------------------------------------------------------------------
    # Construction from raw data
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data, source: Optional[str] = None) -> "ModelArtifact":
        """Build and validate an artifact from a decoded blob."""
        if not isinstance(data, dict):
            raise ArtifactFormatError("<root>", "expected a JSON object, got %s"
                                      % type(data).__name__)
        scaler = ScalerParams.from_dict(data.get("scaler"))

        model_section = data.get("model")
        if model_section is not None and not isinstance(model_section, dict):
            raise ArtifactFormatError("model", "expected an object")

        layers = {}
        for name in LAYER_NAMES:
            layers[name] = _read_layer(data, model_section, name)

        return cls(scaler=scaler, source=source, **layers)

    def to_dict(self) -> dict:
        """Serialize to the canonical blob layout."""
        out = {
            "scaler": {
                "mean": self.scaler.mean.tolist(),
                "scale": self.scaler.scale.tolist(),
            },
        }
        for name, layer in zip(LAYER_NAMES, self.layers):
            out[name] = {"weights": layer.weights.tolist(), "bias": layer.bias.tolist()}
        return out


def _read_layer(data: dict, model_section: Optional[dict], name: str) -> LayerWeights:
    """Find ``name`` in either supported layout."""
    for section, prefix in ((data, ""), (model_section or {}, "model.")):
        entry = section.get(name)
        if isinstance(entry, dict):
            weights = entry.get("weights", entry.get("weight"))
            return LayerWeights.from_arrays(weights, entry.get("bias"), prefix + name)
        if name + "_w" in section or name + "_b" in section:
            return LayerWeights.from_arrays(
                section.get(name + "_w"), section.get(name + "_b"), prefix + name,
            )
    raise ArtifactFormatError(name, "layer not found (expected '%s' or 'model.%s_w')"
                              % (name, name))


# =============================================================================
# Loading
# =============================================================================

def parse_blob(text: str, source: str = "<string>"):
    """Decode a JSON or JavaScript-wrapped artifact blob."""
    stripped = text.strip()
    match = _JS_ASSIGNMENT.match(stripped)
    if match:
        stripped = stripped[match.end():].rstrip().rstrip(";")
    try:
        return json.loads(stripped)
    except ValueError as e:
        raise ArtifactFormatError(source, "not valid JSON (%s)" % e)


@log_timing
def load_artifact(path) -> ModelArtifact:
    """Read, decode and validate an artifact file.

    Args:
        path: Path to a ``.json`` or ``.js`` artifact

    Returns:
        Validated, read-only ModelArtifact

    Raises:
        FileNotFoundError: If the file does not exist
        ArtifactFormatError: If the blob is malformed
        ShapeMismatch: If any dimension is inconsistent
    """
    path = os.fspath(path)
    if not os.path.isfile(path):
        raise FileNotFoundError("Model artifact not found: %s" % path)

    with open(path, "r", encoding="utf-8") as f:
        text = f.read()

    try:
        artifact = ModelArtifact.from_dict(parse_blob(text, source=path), source=path)
    except (ShapeMismatch, ArtifactFormatError) as e:
        logger.error("Rejected model artifact %s: %s", path, e)
        raise

    logger.info(
        "Loaded model artifact %s (63 -> %d -> %d -> %d, %d params)",
        path, artifact.fc1.rows, artifact.fc2.rows, artifact.fc3.rows,
        artifact.parameter_count,
    )
    return artifact


def save_artifact(artifact: ModelArtifact, path):
    """Write an artifact in the canonical JSON layout."""
    path = os.fspath(path)
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(artifact.to_dict(), f)
    logger.info("Model artifact written to %s", path)
    return path
