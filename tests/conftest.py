"""Shared pytest fixtures for mnist_training tests."""

import pytest
import torch

from mnist_training.config import DataModuleConfig
from mnist_training.data import DigitSplit, MNISTDataModule
from mnist_training.types import DigitBatch


def _synthetic_split(n: int, seed: int) -> DigitSplit:
    """``n`` random 28x28 images with labels cycling 0..9."""
    generator = torch.Generator().manual_seed(seed)
    images = torch.rand(n, 1, 28, 28, generator=generator)
    labels = torch.arange(n) % 10
    return DigitSplit(images=images, labels=labels)


@pytest.fixture()
def train_split() -> DigitSplit:
    """25 training samples: two full batches of 10 plus a final batch of 5."""
    return _synthetic_split(25, seed=0)


@pytest.fixture()
def test_split() -> DigitSplit:
    return _synthetic_split(12, seed=1)


@pytest.fixture()
def datamodule(train_split: DigitSplit, test_split: DigitSplit) -> MNISTDataModule:
    cfg = DataModuleConfig(batch_size=10, eval_batch_size=8, download=False)
    return MNISTDataModule(cfg, train_split=train_split, test_split=test_split)


@pytest.fixture()
def digit_batch() -> DigitBatch:
    """Batch of 4 random images with one-hot targets for classes 0..3."""
    return {
        "images": torch.rand(4, 1, 28, 28),
        "targets": torch.eye(10)[:4],
    }
