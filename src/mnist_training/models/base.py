"""Base LightningModule for digit classification models."""

from __future__ import annotations

from typing import Any

import lightning as L
import torch
from torchmetrics.classification import MulticlassAccuracy

from mnist_training.exceptions import ShapeMismatchError
from mnist_training.losses import build_loss_fn
from mnist_training.types import DigitBatch


class BaseDigitClassifier(L.LightningModule):
    """Abstract base for models that output class probabilities.

    Subclasses build their layers in ``__init__`` and implement ``forward()``
    returning probabilities of shape ``(B, num_classes)`` (rows sum to 1).
    Targets arrive one-hot, so the loss compares two distributions.
    """

    def __init__(
        self,
        num_classes: int = 10,
        learning_rate: float = 1e-3,
        betas: tuple[float, float] = (0.9, 0.999),
        loss: str = "cross_entropy",
        focal_gamma: float = 2.0,
    ) -> None:
        super().__init__()
        self.save_hyperparameters()
        self.loss_fn = build_loss_fn(loss, focal_gamma=focal_gamma)

        # Update in step; compute+log+reset in epoch_end.
        self.train_top1 = MulticlassAccuracy(
            num_classes=num_classes, top_k=1, average="micro"
        )
        self.test_top1 = MulticlassAccuracy(
            num_classes=num_classes, top_k=1, average="micro"
        )
        self.test_per_cls = MulticlassAccuracy(
            num_classes=num_classes, top_k=1, average="none"
        )

    def _check_batch(self, batch: DigitBatch) -> None:
        images, targets = batch["images"], batch["targets"]
        if images.shape[0] != targets.shape[0]:
            msg = (
                f"Batch has {images.shape[0]} images but "
                f"{targets.shape[0]} targets"
            )
            raise ShapeMismatchError(msg)
        if targets.ndim != 2 or targets.shape[1] != self.hparams["num_classes"]:
            msg = (
                f"Expected one-hot targets of shape (B, "
                f"{self.hparams['num_classes']}), got {tuple(targets.shape)}"
            )
            raise ShapeMismatchError(msg)

    def training_step(self, batch: DigitBatch, batch_idx: int) -> torch.Tensor:
        self._check_batch(batch)
        images, targets = batch["images"], batch["targets"]
        probs = self(images)
        loss: torch.Tensor = self.loss_fn(probs, targets)
        self.log(
            "train/loss", loss, on_step=True, on_epoch=True, prog_bar=True
        )
        self.train_top1.update(probs, targets.argmax(dim=1))
        return loss

    def on_train_epoch_end(self) -> None:
        self.log("train/acc_top1", self.train_top1.compute())
        self.train_top1.reset()

    def test_step(self, batch: DigitBatch, batch_idx: int) -> None:
        self._check_batch(batch)
        images, targets = batch["images"], batch["targets"]
        probs = self(images)
        loss = self.loss_fn(probs, targets)
        self.log("test/loss", loss, on_step=False, on_epoch=True)
        labels = targets.argmax(dim=1)
        self.test_top1.update(probs, labels)
        self.test_per_cls.update(probs, labels)

    def on_test_epoch_end(self) -> None:
        self.log("test/acc_top1", self.test_top1.compute())
        per_cls: torch.Tensor = self.test_per_cls.compute()
        for i, acc in enumerate(per_cls):
            self.log(f"test/acc_class_{i}", acc)
        self.test_top1.reset()
        self.test_per_cls.reset()

    def configure_optimizers(self) -> Any:
        return torch.optim.Adam(
            self.parameters(),
            lr=self.hparams["learning_rate"],
            betas=tuple(self.hparams["betas"]),
        )
