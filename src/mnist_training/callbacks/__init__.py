"""Training callbacks for mnist_training."""

from mnist_training.callbacks.accuracy import ThrottledAccuracyCallback
from mnist_training.callbacks.model_info import ModelInfoCallback
from mnist_training.callbacks.statistics import DatasetStatisticsCallback

__all__ = [
    "DatasetStatisticsCallback",
    "ModelInfoCallback",
    "ThrottledAccuracyCallback",
]
