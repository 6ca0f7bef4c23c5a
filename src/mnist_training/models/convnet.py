"""Six-stage convolutional network for 28x28 grayscale digits."""

from __future__ import annotations

from typing import Any

import torch
import torch.nn as nn

from mnist_training.exceptions import ShapeMismatchError
from mnist_training.models.base import BaseDigitClassifier
from mnist_training.utils.hydra import register

INPUT_SHAPE: tuple[int, int, int] = (1, 28, 28)


@register(
    group="model",
    name="convnet",
    hidden_channels=16,
    wide_channels=32,
    dropout=0.1,
)
class MNISTConvNet(BaseDigitClassifier):
    """Conv feature stack followed by a dropout + linear classifier head.

    Two 3x3 convs, 2x2 max-pool, a 3x3 conv, 2x2 max-pool, then a 3x3 conv
    projecting to ``num_classes`` channels. The 7x7 maps are flattened,
    passed through dropout and a linear layer, and normalized with softmax.

    Args:
        num_classes: Number of output classes.
        hidden_channels: Channels of the first two convs.
        wide_channels: Channels of the third conv.
        dropout: Fraction of flattened activations zeroed while training.
    """

    def __init__(
        self,
        num_classes: int = 10,
        hidden_channels: int = 16,
        wide_channels: int = 32,
        dropout: float = 0.1,
        **kwargs: Any,
    ) -> None:
        super().__init__(num_classes=num_classes, **kwargs)
        self.features = nn.Sequential(
            nn.Conv2d(1, hidden_channels, kernel_size=3, padding=1),
            nn.ReLU(),
            nn.Conv2d(hidden_channels, hidden_channels, kernel_size=3, padding=1),
            nn.ReLU(),
            nn.MaxPool2d(2),  # 28 -> 14
            nn.Conv2d(hidden_channels, wide_channels, kernel_size=3, padding=1),
            nn.ReLU(),
            nn.MaxPool2d(2),  # 14 -> 7
            nn.Conv2d(wide_channels, num_classes, kernel_size=3, padding=1),
        )
        self.classifier = nn.Sequential(
            nn.Flatten(),
            nn.Dropout(dropout),
            nn.Linear(num_classes * 7 * 7, num_classes),
        )

    def logits(self, images: torch.Tensor) -> torch.Tensor:
        """Unnormalized class scores of shape ``(B, num_classes)``."""
        if tuple(images.shape[1:]) != INPUT_SHAPE:
            msg = (
                f"Expected images of shape (B, 1, 28, 28), "
                f"got {tuple(images.shape)}"
            )
            raise ShapeMismatchError(msg)
        return self.classifier(self.features(images))  # type: ignore[no-any-return]

    def forward(self, images: torch.Tensor) -> torch.Tensor:
        return torch.softmax(self.logits(images), dim=1)
