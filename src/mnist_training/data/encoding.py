"""One-hot label encoding over an explicit, ordered class set."""

from __future__ import annotations

from collections import Counter
from collections.abc import Hashable, Sequence

import torch

from mnist_training.exceptions import InvalidLabelError, ShapeMismatchError


def onehotbatch(
    labels: Sequence[Hashable] | torch.Tensor,
    classes: Sequence[Hashable],
    dtype: torch.dtype = torch.float32,
) -> torch.Tensor:
    """Encode labels as one-hot rows.

    Args:
        labels: Labels to encode, one per sample. Tensors are read element-wise.
        classes: Every possible class, in the order that fixes each class's
            column index.
        dtype: Output dtype (float so the rows can feed the loss directly).

    Returns:
        Tensor of shape ``(len(labels), len(classes))`` with exactly one ``1``
        per row.

    Raises:
        InvalidLabelError: A label is not present in ``classes``.
        ValueError: ``classes`` lists a class more than once.
        ShapeMismatchError: ``labels`` is a tensor that is not 1-D.
    """
    class_to_idx = {c: i for i, c in enumerate(classes)}
    if len(class_to_idx) != len(classes):
        repeated = [c for c, n in Counter(classes).items() if n > 1]
        msg = f"Class set must not repeat classes, got duplicates {repeated!r}"
        raise ValueError(msg)
    if isinstance(labels, torch.Tensor):
        if labels.ndim != 1:
            msg = f"Expected 1-D labels, got shape {tuple(labels.shape)}"
            raise ShapeMismatchError(msg)
        labels = labels.tolist()

    indices: list[int] = []
    for label in labels:
        try:
            indices.append(class_to_idx[label])
        except KeyError:
            msg = f"Label {label!r} is not one of {list(classes)!r}"
            raise InvalidLabelError(msg) from None

    encoded = torch.zeros(len(indices), len(class_to_idx), dtype=dtype)
    if indices:
        encoded[torch.arange(len(indices)), torch.tensor(indices)] = 1
    return encoded


def onecold(scores: torch.Tensor, classes: Sequence[Hashable]) -> list[Hashable]:
    """Map each row of ``scores`` back to the class at its argmax.

    Inverse of :func:`onehotbatch` for one-hot rows; for probability rows it
    returns the predicted class.
    """
    if scores.ndim != 2 or scores.shape[1] != len(classes):
        msg = (
            f"Expected scores of shape (N, {len(classes)}), "
            f"got {tuple(scores.shape)}"
        )
        raise ShapeMismatchError(msg)
    return [classes[i] for i in scores.argmax(dim=1).tolist()]
