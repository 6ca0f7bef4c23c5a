"""Digit classification model implementations."""

from mnist_training.models.base import BaseDigitClassifier
from mnist_training.models.convnet import MNISTConvNet

__all__ = [
    "BaseDigitClassifier",
    "MNISTConvNet",
]
