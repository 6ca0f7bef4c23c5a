"""Data pipeline for mnist_training."""

from mnist_training.data.batching import build_batches, make_minibatch, partition
from mnist_training.data.datamodule import MNISTDataModule
from mnist_training.data.dataset import DigitSplit, load_mnist_split
from mnist_training.data.encoding import onecold, onehotbatch

__all__ = [
    "DigitSplit",
    "MNISTDataModule",
    "build_batches",
    "load_mnist_split",
    "make_minibatch",
    "onecold",
    "onehotbatch",
    "partition",
]
