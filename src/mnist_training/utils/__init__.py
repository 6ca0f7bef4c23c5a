"""Utilities shared across mnist_training."""

from mnist_training.utils.throttle import Throttle

__all__ = ["Throttle"]
