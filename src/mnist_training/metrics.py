"""Reporting-only metrics."""

import torch

from mnist_training.exceptions import ShapeMismatchError


@torch.no_grad()
def accuracy(probs: torch.Tensor, targets: torch.Tensor) -> float:
    """Fraction of rows whose argmax matches the target's one-hot index.

    Never part of the autograd graph; use the loss for gradients.
    """
    if probs.shape != targets.shape:
        msg = (
            f"Predictions {tuple(probs.shape)} and targets "
            f"{tuple(targets.shape)} must have the same shape"
        )
        raise ShapeMismatchError(msg)
    if probs.shape[0] == 0:
        return 0.0
    hits = probs.argmax(dim=1) == targets.argmax(dim=1)
    return hits.float().mean().item()
