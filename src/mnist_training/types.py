"""Type aliases and TypedDicts for mnist_training inter-module contracts."""

from typing import TypedDict

import torch


class DigitBatch(TypedDict):
    """A single prebuilt batch of MNIST samples.

    images: Float tensor of shape (B, 1, 28, 28), values in [0, 1].
    targets: Float tensor of shape (B, num_classes), one-hot rows.
    """

    images: torch.Tensor
    targets: torch.Tensor
