"""
Model export tooling.

Provides:
    - export_artifact.py: PyTorch checkpoint + scaler → JSON model artifact
"""
