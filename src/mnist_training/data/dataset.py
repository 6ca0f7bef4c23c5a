"""MNIST split loading and in-memory batch datasets."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import torch
from loguru import logger
from torch.utils.data import Dataset
from torchvision import datasets

from mnist_training.exceptions import ShapeMismatchError
from mnist_training.types import DigitBatch

IMAGE_SHAPE: tuple[int, int, int] = (1, 28, 28)


@dataclass(frozen=True, eq=False)
class DigitSplit:
    """One split of the digit dataset held in memory.

    Args:
        images: Float tensor of shape ``(N, 1, 28, 28)`` with values in [0, 1].
        labels: Long tensor of shape ``(N,)`` with integer class labels.
    """

    images: torch.Tensor
    labels: torch.Tensor

    def __post_init__(self) -> None:
        if self.images.shape[0] != self.labels.shape[0]:
            msg = (
                f"{self.images.shape[0]} images but {self.labels.shape[0]} labels"
            )
            raise ShapeMismatchError(msg)
        if tuple(self.images.shape[1:]) != IMAGE_SHAPE:
            msg = (
                f"Expected images of shape (N, {', '.join(map(str, IMAGE_SHAPE))}), "
                f"got {tuple(self.images.shape)}"
            )
            raise ShapeMismatchError(msg)

    def __len__(self) -> int:
        return int(self.labels.shape[0])

    def head(self, n: int | None) -> DigitSplit:
        """First ``n`` samples (all of them when ``n`` is None)."""
        if n is None:
            return self
        return DigitSplit(images=self.images[:n], labels=self.labels[:n])


def to_unit_float(images: torch.Tensor) -> torch.Tensor:
    """Convert ``uint8`` (N, 28, 28) images to float (N, 1, 28, 28) in [0, 1]."""
    if images.ndim == 3:
        images = images.unsqueeze(1)
    if images.dtype == torch.uint8:
        return images.to(torch.float32) / 255.0
    return images.to(torch.float32)


def load_mnist_split(
    root: str | Path, train: bool, download: bool = True
) -> DigitSplit:
    """Load the MNIST train or test split via torchvision.

    The whole split is materialized as tensors; no per-sample transforms are
    applied later.
    """
    split_name = "train" if train else "test"
    mnist = datasets.MNIST(root=str(root), train=train, download=download)
    split = DigitSplit(
        images=to_unit_float(mnist.data),
        labels=mnist.targets.to(torch.long),
    )
    logger.info(f"Loaded MNIST {split_name} split: {len(split)} samples from {root}")
    return split


class BatchListDataset(Dataset[DigitBatch]):
    """Dataset whose items are already-built batches.

    Used with ``DataLoader(batch_size=None)`` so each prebuilt batch is yielded
    unchanged and in order.
    """

    def __init__(self, batches: list[DigitBatch]) -> None:
        self.batches = batches

    def __len__(self) -> int:
        return len(self.batches)

    def __getitem__(self, idx: int) -> DigitBatch:
        return self.batches[idx]
