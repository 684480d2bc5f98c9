"""
Numeric inference package for fingerspelling classification.

Provides:
    - ModelArtifact: validated, read-only scaler + layer weights
    - LandmarkFeatureExtractor: 21 world landmarks → 63-dim feature vector
    - Scaler, DenseLayer: standardization and affine layers
    - FingerspellClassifier: scaler → fc1 → fc2 → fc3 → softmax → argmax
    - LabelDecoder: class index → A-Z / DEL / SPACE
    - FingerspellNet: PyTorch reference network (export only)
"""
