"""Ordered, eager minibatch construction."""

from __future__ import annotations

import torch
from loguru import logger

from mnist_training.exceptions import InvalidBatchSizeError, ShapeMismatchError
from mnist_training.types import DigitBatch


def partition(n: int, batch_size: int) -> list[range]:
    """Split the index range ``0 .. n-1`` into contiguous groups.

    Groups are in order and never overlap. Every group holds ``batch_size``
    indices except the last, which holds ``n % batch_size`` when that is
    nonzero.

    Raises:
        InvalidBatchSizeError: ``batch_size`` is zero or negative.
    """
    if batch_size <= 0:
        msg = f"batch_size must be positive, got {batch_size}"
        raise InvalidBatchSizeError(msg)
    return [
        range(start, min(start + batch_size, n))
        for start in range(0, n, batch_size)
    ]


def make_minibatch(
    images: torch.Tensor, targets: torch.Tensor, idxs: range | list[int]
) -> DigitBatch:
    """Gather the samples at ``idxs`` into a DigitBatch."""
    if images.shape[0] != targets.shape[0]:
        msg = (
            f"images has {images.shape[0]} samples but targets has "
            f"{targets.shape[0]}"
        )
        raise ShapeMismatchError(msg)
    index = torch.as_tensor(list(idxs), dtype=torch.long)
    return {"images": images[index], "targets": targets[index]}


def build_batches(
    images: torch.Tensor, targets: torch.Tensor, batch_size: int
) -> list[DigitBatch]:
    """Eagerly build every minibatch of one ordered pass over the data."""
    if images.shape[0] != targets.shape[0]:
        msg = (
            f"images has {images.shape[0]} samples but targets has "
            f"{targets.shape[0]}"
        )
        raise ShapeMismatchError(msg)
    groups = partition(images.shape[0], batch_size)
    batches = [make_minibatch(images, targets, idxs) for idxs in groups]
    logger.debug(
        f"Built {len(batches)} batches of up to {batch_size} from "
        f"{images.shape[0]} samples"
    )
    return batches
