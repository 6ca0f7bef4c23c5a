"""Throttled accuracy reporting against a fixed held-out batch."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import lightning as L
import torch
from loguru import logger

from mnist_training.metrics import accuracy
from mnist_training.types import DigitBatch
from mnist_training.utils.throttle import Throttle


class ThrottledAccuracyCallback(L.Callback):
    """Report held-out accuracy at most once every ``interval_s`` seconds.

    Offered a report after every training batch; the throttle drops offers
    that arrive sooner than ``interval_s`` after the last report. The
    evaluation runs with dropout disabled and without gradients, then puts
    the model back in training mode.

    Args:
        interval_s: Minimum wall-clock seconds between two reports.
        eval_batch: Held-out batch to score. When ``None`` it is read from
            ``trainer.datamodule.eval_batch`` at fit start.
        clock: Time source for the throttle.
    """

    def __init__(
        self,
        interval_s: float = 10.0,
        eval_batch: DigitBatch | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        super().__init__()
        self.interval_s = interval_s
        self.eval_batch = eval_batch
        self.history: list[tuple[int, float]] = []
        self._pl_module: L.LightningModule | None = None
        self._trainer: L.Trainer | None = None
        throttle_kwargs: dict[str, Any] = {}
        if clock is not None:
            throttle_kwargs["clock"] = clock
        self.throttle = Throttle(self._report, interval_s, **throttle_kwargs)

    def on_fit_start(self, trainer: L.Trainer, pl_module: L.LightningModule) -> None:
        """Resolve the held-out batch from the datamodule if none was given."""
        if self.eval_batch is None:
            datamodule = getattr(trainer, "datamodule", None)
            if datamodule is None or not hasattr(datamodule, "eval_batch"):
                raise RuntimeError(
                    "ThrottledAccuracyCallback needs eval_batch or a datamodule "
                    "exposing eval_batch"
                )
            self.eval_batch = datamodule.eval_batch
        logger.info(
            f"Reporting accuracy on {self.eval_batch['images'].shape[0]} held-out "
            f"samples at most every {self.interval_s:g}s"
        )

    def on_train_batch_end(
        self,
        trainer: L.Trainer,
        pl_module: L.LightningModule,
        outputs: torch.Tensor | Mapping[str, Any] | None,
        batch: DigitBatch,
        batch_idx: int,
    ) -> None:
        """Offer a report to the throttle."""
        self._trainer = trainer
        self._pl_module = pl_module
        self.throttle.maybe_call()

    def _report(self) -> None:
        if self._pl_module is None or self.eval_batch is None:
            return
        pl_module = self._pl_module
        was_training = pl_module.training
        pl_module.eval()
        try:
            with torch.no_grad():
                images = self.eval_batch["images"].to(pl_module.device)
                targets = self.eval_batch["targets"].to(pl_module.device)
                acc = accuracy(pl_module(images), targets)
        finally:
            pl_module.train(was_training)

        step = int(self._trainer.global_step) if self._trainer is not None else 0
        self.history.append((step, acc))
        logger.info(f"step {step}: held-out accuracy {acc:.4f}")
