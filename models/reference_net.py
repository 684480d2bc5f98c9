"""
FingerspellNet - PyTorch definition of the fingerspelling MLP.

Architecture (matches the exported artifact layer for layer)::

    Input  : 63 features (standardized world landmarks)
    FC1    : h1 units, ReLU
    FC2    : h2 units, ReLU
    FC3    : 28 logits (A-Z, DEL, SPACE)

Only used off the hot path: to turn a trained checkpoint into a JSON
artifact and to cross-check the numpy forward pass against PyTorch.
Runtime inference never imports torch.
"""

import logging

import numpy as np
import torch
import torch.nn as nn

from core.types import FEATURE_DIM, NUM_CLASSES

logger = logging.getLogger(__name__)

DEFAULT_HIDDEN = (128, 64)


class FingerspellNet(nn.Module):
    """Three fully connected layers with ReLU between them."""

    def __init__(self, input_dim=FEATURE_DIM, hidden1=DEFAULT_HIDDEN[0],
                 hidden2=DEFAULT_HIDDEN[1], num_classes=NUM_CLASSES):
        super(FingerspellNet, self).__init__()
        self.fc1 = nn.Linear(input_dim, hidden1)
        self.fc2 = nn.Linear(hidden1, hidden2)
        self.fc3 = nn.Linear(hidden2, num_classes)
        self.relu = nn.ReLU()

    def forward(self, x):
        """
        Args:
            x: Tensor of shape (batch, 63), already standardized

        Returns:
            Tensor of shape (batch, 28) - raw logits
        """
        x = self.relu(self.fc1(x))
        x = self.relu(self.fc2(x))
        return self.fc3(x)

    def predict_proba(self, x):
        self.eval()
        with torch.no_grad():
            return torch.softmax(self.forward(x), dim=1)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def layer_dict(self):
        """Weights in the artifact's ``fcN: {weights, bias}`` layout."""
        out = {}
        for name in ("fc1", "fc2", "fc3"):
            layer = getattr(self, name)
            out[name] = {
                "weights": layer.weight.detach().cpu().double().numpy().tolist(),
                "bias": layer.bias.detach().cpu().double().numpy().tolist(),
            }
        return out

    @classmethod
    def from_artifact(cls, artifact):
        """Build a network holding the artifact's layer weights (float64)."""
        h1, h2 = artifact.hidden_sizes
        model = cls(input_dim=artifact.fc1.columns, hidden1=h1, hidden2=h2,
                    num_classes=artifact.num_classes).double()
        with torch.no_grad():
            for name, layer in zip(("fc1", "fc2", "fc3"), artifact.layers):
                module = getattr(model, name)
                module.weight.copy_(torch.from_numpy(np.array(layer.weights)))
                module.bias.copy_(torch.from_numpy(np.array(layer.bias)))
        model.eval()
        return model

    @classmethod
    def load_checkpoint(cls, path, device="cpu"):
        """Load a trained model from checkpoint.

        Args:
            path: Path to .pth checkpoint (full dict with
                ``model_state_dict`` or a raw state_dict)
            device: Device to load onto

        Returns:
            FingerspellNet in eval mode, sizes inferred from the weights
        """
        checkpoint = torch.load(path, map_location=device)
        if isinstance(checkpoint, dict) and "model_state_dict" in checkpoint:
            state_dict = checkpoint["model_state_dict"]
        else:
            state_dict = checkpoint

        missing = [k for k in ("fc1.weight", "fc2.weight", "fc3.weight") if k not in state_dict]
        if missing:
            raise KeyError("Checkpoint %s lacks %s" % (path, ", ".join(missing)))

        fc1_w = state_dict["fc1.weight"]
        model = cls(
            input_dim=fc1_w.shape[1],
            hidden1=fc1_w.shape[0],
            hidden2=state_dict["fc2.weight"].shape[0],
            num_classes=state_dict["fc3.weight"].shape[0],
        )
        model.load_state_dict(state_dict)
        model.to(device)
        model.eval()
        logger.info("Loaded FingerspellNet (%d -> %d -> %d -> %d) from %s",
                    fc1_w.shape[1], fc1_w.shape[0],
                    state_dict["fc2.weight"].shape[0],
                    state_dict["fc3.weight"].shape[0], path)
        return model
