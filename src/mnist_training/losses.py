"""Loss functions over predicted class probabilities and one-hot targets."""

from __future__ import annotations

import torch
import torch.nn as nn

from mnist_training.exceptions import ShapeMismatchError

EPSILON = 1e-7


def _check_shapes(probs: torch.Tensor, targets: torch.Tensor) -> None:
    if probs.shape != targets.shape:
        msg = (
            f"Predictions {tuple(probs.shape)} and targets "
            f"{tuple(targets.shape)} must have the same shape"
        )
        raise ShapeMismatchError(msg)


def categorical_crossentropy(
    probs: torch.Tensor, targets: torch.Tensor, eps: float = EPSILON
) -> torch.Tensor:
    """Batch-averaged cross-entropy between probabilities and one-hot targets.

    ``eps`` keeps ``log`` finite when a predicted probability is exactly 0.
    """
    _check_shapes(probs, targets)
    per_sample = -(targets * torch.log(probs + eps)).sum(dim=1)
    return per_sample.mean()


class CategoricalCrossEntropy(nn.Module):
    """Module form of :func:`categorical_crossentropy`."""

    def __init__(self, eps: float = EPSILON) -> None:
        super().__init__()
        self.eps = eps

    def forward(self, probs: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
        return categorical_crossentropy(probs, targets, eps=self.eps)


class FocalLoss(nn.Module):
    """Focal loss for handling class imbalance.

    Focal loss down-weights well-classified examples, focusing training
    on hard negatives.  When ``gamma=0`` this reduces to categorical
    cross-entropy.

    Parameters
    ----------
    gamma:
        Focusing parameter.  Higher values increase focus on hard examples.
    eps:
        Added inside ``log`` for numerical stability.
    """

    def __init__(self, gamma: float = 2.0, eps: float = EPSILON) -> None:
        super().__init__()
        self.gamma = gamma
        self.eps = eps

    def forward(self, probs: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
        """Compute focal loss.

        Parameters
        ----------
        probs:
            Predicted class probabilities of shape ``(B, C)``.
        targets:
            One-hot targets of shape ``(B, C)``.
        """
        _check_shapes(probs, targets)
        pt = (targets * probs).sum(dim=1)
        ce_loss = -torch.log(pt + self.eps)
        focal_loss = ((1.0 - pt) ** self.gamma) * ce_loss
        return focal_loss.mean()


def build_loss_fn(name: str, focal_gamma: float = 2.0) -> nn.Module:
    """Factory for loss functions.

    Parameters
    ----------
    name:
        Loss function name: ``"cross_entropy"`` or ``"focal"``.
    focal_gamma:
        Gamma for focal loss (ignored for cross_entropy).

    Returns
    -------
    nn.Module
        The configured loss function.
    """
    if name == "cross_entropy":
        return CategoricalCrossEntropy()
    if name == "focal":
        return FocalLoss(gamma=focal_gamma)
    msg = f"Unknown loss function: {name!r}. Use 'cross_entropy' or 'focal'."
    raise ValueError(msg)
