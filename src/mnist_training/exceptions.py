"""Exception types raised by the mnist_training data and model pipeline."""


class MNISTTrainingError(Exception):
    """Base class for all mnist_training errors."""


class InvalidLabelError(MNISTTrainingError, ValueError):
    """A label is not a member of the known class set."""


class InvalidBatchSizeError(MNISTTrainingError, ValueError):
    """Batch size is zero or negative."""


class ShapeMismatchError(MNISTTrainingError, ValueError):
    """Tensors disagree in sample count or image dimensions."""
