#!/usr/bin/env python3
"""
Convert a trained FingerspellNet checkpoint + scaler into a JSON artifact.

Usage::

    python -m training.export_artifact \\
        --checkpoint models/weights/asl_mlp.pth \\
        --scaler models/weights/scaler.json \\
        --output models/weights/asl_model.json

The scaler file is either JSON (``{"mean": [...], "scale": [...]}``) or an
``.npz`` holding ``mean``/``scale`` (scikit-learn's ``mean_``/``scale_``
names are accepted too). Unless ``--no-verify`` is given, the exported
artifact is run through the numpy classifier and compared with PyTorch on
random inputs before it is written.

Requirements:
    - torch (export only; runtime inference is numpy)
"""

import os
import sys
import json
import logging
import argparse

import numpy as np

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from core.errors import InferenceError  # noqa: E402
from core.types import FEATURE_DIM  # noqa: E402
from models.artifact import ModelArtifact, save_artifact  # noqa: E402
from models.classifier import FingerspellClassifier  # noqa: E402
from modules.utils.logger import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)


def load_scaler_params(path):
    """Read scaler mean/scale from ``.json`` or ``.npz``.

    Returns:
        {"mean": list, "scale": list}
    """
    ext = os.path.splitext(path)[1].lower()
    if ext == ".json":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if "scaler" in data:
            data = data["scaler"]
        return {"mean": data["mean"], "scale": data["scale"]}
    if ext == ".npz":
        with np.load(path, allow_pickle=False) as data:
            mean_key = "mean" if "mean" in data else "mean_"
            scale_key = "scale" if "scale" in data else "scale_"
            return {"mean": data[mean_key].tolist(), "scale": data[scale_key].tolist()}
    raise ValueError("Unsupported scaler file %s (expected .json or .npz)" % path)


def build_artifact(net, scaler_params, source=None):
    """Assemble and validate a ModelArtifact from a network and scaler."""
    blob = {"scaler": scaler_params}
    blob.update(net.layer_dict())
    return ModelArtifact.from_dict(blob, source=source)


def verify_parity(artifact, samples=256, seed=0, atol=1e-9):
    """Compare the numpy forward pass with PyTorch on random inputs.

    Returns:
        (max_abs_diff, argmax_agreement) over ``samples`` random vectors
    """
    import torch
    from models.reference_net import FingerspellNet

    rng = np.random.default_rng(seed)
    classifier = FingerspellClassifier(artifact)
    net = FingerspellNet.from_artifact(artifact)

    mean = np.asarray(artifact.scaler.mean)
    scale = np.asarray(artifact.scaler.scale)
    raw = rng.normal(loc=mean, scale=np.abs(scale), size=(samples, FEATURE_DIM))

    ours = np.stack([classifier.predict_proba(row) for row in raw])
    theirs = net.predict_proba(torch.from_numpy((raw - mean) / scale)).numpy()

    max_diff = float(np.max(np.abs(ours - theirs)))
    agreement = float(np.mean(np.argmax(ours, axis=1) == np.argmax(theirs, axis=1)))
    if max_diff > atol:
        logger.warning("Parity check: max |p_numpy - p_torch| = %.3g (> %.1g)", max_diff, atol)
    else:
        logger.info("Parity check passed: max diff %.3g, argmax agreement %.1f%%",
                    max_diff, agreement * 100)
    return max_diff, agreement


def export(checkpoint, scaler_path, output, verify=True, samples=256):
    from models.reference_net import FingerspellNet

    net = FingerspellNet.load_checkpoint(checkpoint, device="cpu")
    artifact = build_artifact(net, load_scaler_params(scaler_path), source=output)
    if verify:
        max_diff, agreement = verify_parity(artifact, samples=samples)
        if agreement < 1.0:
            raise RuntimeError(
                "numpy and PyTorch disagree on %.1f%% of samples (max diff %.3g)"
                % ((1.0 - agreement) * 100, max_diff)
            )
    return save_artifact(artifact, output)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Export a FingerspellNet checkpoint to a JSON model artifact"
    )
    parser.add_argument("--checkpoint", default="models/weights/asl_mlp.pth",
                        help="Trained PyTorch checkpoint (.pth)")
    parser.add_argument("--scaler", default="models/weights/scaler.json",
                        help="Scaler parameters (.json or .npz)")
    parser.add_argument("--output", default="models/weights/asl_model.json",
                        help="Artifact path to write")
    parser.add_argument("--no-verify", action="store_true",
                        help="Skip the numpy/PyTorch parity check")
    parser.add_argument("--samples", type=int, default=256,
                        help="Random inputs used by the parity check")
    return parser.parse_args(argv)


def main(argv=None):
    setup_logging("INFO")
    args = parse_args(argv)
    try:
        path = export(args.checkpoint, args.scaler, args.output,
                      verify=not args.no_verify, samples=args.samples)
    except (InferenceError, KeyError, ValueError, RuntimeError, FileNotFoundError) as e:
        logger.error("Export failed: %s", e)
        return 1
    logger.info("Artifact ready: %s", path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
