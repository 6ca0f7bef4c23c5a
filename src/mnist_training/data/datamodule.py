"""LightningDataModule for the MNIST handwritten digits dataset."""

import json
from pathlib import Path
from typing import Any

import lightning as L
import torch
from loguru import logger
from torch.utils.data import DataLoader

from mnist_training.config import DataModuleConfig
from mnist_training.data.batching import build_batches, make_minibatch
from mnist_training.data.dataset import BatchListDataset, DigitSplit, load_mnist_split
from mnist_training.data.encoding import onehotbatch
from mnist_training.types import DigitBatch


class MNISTDataModule(L.LightningDataModule):
    """DataModule serving prebuilt, ordered one-hot batches of MNIST digits.

    Batches are built eagerly in :meth:`setup` and held for the whole run.
    The train loader never shuffles: one pass visits every batch in the
    order :func:`partition` produced them.

    The train and test splits can be injected directly (``train_split`` /
    ``test_split``); otherwise they are loaded from ``data_root`` through
    torchvision, downloading when ``download`` is set.

    Args:
        config: DataModuleConfig frozen model with all DataLoader parameters.
            If provided, flat kwargs are ignored.
        data_root: Directory torchvision stores MNIST under.
        batch_size: Training batch size (default: 128).
        eval_batch_size: Size of the held-out accuracy batch taken from the
            start of the test split. ``None`` uses the whole split.
        num_workers: Number of DataLoader workers (default: 0).
        pin_memory: Whether to pin memory (default: False).
        download: Download MNIST if missing (default: True).
        num_classes: Size of the digit class set (default: 10).
        train_split: Preloaded training split.
        test_split: Preloaded test split.
        **kwargs: Absorbs extra Hydra-injected keys (_target_, _recursive_, etc.).
    """

    def __init__(
        self,
        config: DataModuleConfig | None = None,
        *,
        data_root: str = "data",
        batch_size: int = 128,
        eval_batch_size: int | None = 1000,
        num_workers: int = 0,
        pin_memory: bool = False,
        download: bool = True,
        num_classes: int = 10,
        train_split: DigitSplit | None = None,
        test_split: DigitSplit | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__()
        if config is not None:
            self._config = config
        else:
            self._config = DataModuleConfig(
                data_root=data_root,
                batch_size=batch_size,
                eval_batch_size=eval_batch_size,
                num_workers=num_workers,
                pin_memory=pin_memory,
                download=download,
                num_classes=num_classes,
            )
        self._data_root = Path(self._config.data_root)
        self._classes = self._config.classes

        self.train_split: DigitSplit | None = train_split
        self.test_split: DigitSplit | None = test_split

        self._train_batches: list[DigitBatch] | None = None
        self._test_batches: list[DigitBatch] | None = None
        self._eval_batch: DigitBatch | None = None

    # ------------------------------------------------------------------
    # Class set
    # ------------------------------------------------------------------

    @property
    def classes(self) -> list[int]:
        """Ordered class set used for one-hot encoding."""
        return self._classes

    @property
    def num_classes(self) -> int:
        return len(self._classes)

    @property
    def class_to_idx(self) -> dict[str, int]:
        """Class name to column index, matching the one-hot layout."""
        return {str(c): i for i, c in enumerate(self._classes)}

    # ------------------------------------------------------------------
    # LightningDataModule lifecycle
    # ------------------------------------------------------------------

    def prepare_data(self) -> None:
        """Download MNIST once, before any split is needed."""
        missing = self.train_split is None or self.test_split is None
        if self._config.download and missing:
            for train in (True, False):
                load_mnist_split(self._data_root, train=train, download=True)

    def setup(self, stage: str | None = None) -> None:
        """Load splits and build batches for the given stage.

        Args:
            stage: "fit", "test", or None (all stages).
                   "fit" builds the train batches and the held-out eval batch.
                   "test" builds the test batches.
        """
        if stage in ("fit", "test", None) and self.test_split is None:
            self.test_split = load_mnist_split(
                self._data_root, train=False, download=self._config.download
            )

        if stage in ("fit", None):
            if self.train_split is None:
                self.train_split = load_mnist_split(
                    self._data_root, train=True, download=self._config.download
                )
            self._train_batches = self._encode_and_batch(
                self.train_split, self._config.batch_size
            )
            held_out = self.test_split.head(self._config.eval_batch_size)
            self._eval_batch = make_minibatch(
                held_out.images,
                onehotbatch(held_out.labels, self._classes),
                range(len(held_out)),
            )
            logger.info(
                f"Setup fit: {len(self._train_batches)} train batches "
                f"({len(self.train_split)} samples), "
                f"eval batch of {len(held_out)} samples"
            )

        if stage in ("test", None):
            self._test_batches = self._encode_and_batch(
                self.test_split, self._config.batch_size
            )
            logger.info(
                f"Setup test: {len(self._test_batches)} batches "
                f"({len(self.test_split)} samples)"
            )

    def _encode_and_batch(
        self, split: DigitSplit, batch_size: int
    ) -> list[DigitBatch]:
        targets = onehotbatch(split.labels, self._classes)
        return build_batches(split.images, targets, batch_size)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    @property
    def train_batches(self) -> list[DigitBatch]:
        if self._train_batches is None:
            raise RuntimeError("Call setup('fit') first")
        return self._train_batches

    @property
    def eval_batch(self) -> DigitBatch:
        """Fixed held-out batch used for periodic accuracy reports."""
        if self._eval_batch is None:
            raise RuntimeError("Call setup('fit') first")
        return self._eval_batch

    # ------------------------------------------------------------------
    # DataLoaders
    # ------------------------------------------------------------------

    def _loader(self, batches: list[DigitBatch]) -> DataLoader[DigitBatch]:
        # batch_size=None: items are already batches, yielded unchanged
        return DataLoader(
            BatchListDataset(batches),
            batch_size=None,
            shuffle=False,
            num_workers=self._config.num_workers,
            pin_memory=self._config.pin_memory,
        )

    def train_dataloader(self) -> DataLoader[DigitBatch]:
        """Return the ordered training DataLoader (no shuffling)."""
        return self._loader(self.train_batches)

    def test_dataloader(self) -> DataLoader[DigitBatch]:
        """Return the test DataLoader."""
        if self._test_batches is None:
            raise RuntimeError("Call setup('test') first")
        return self._loader(self._test_batches)

    # ------------------------------------------------------------------
    # Class statistics and labels_mapping.json
    # ------------------------------------------------------------------

    def class_counts(self) -> torch.Tensor:
        """Per-class sample counts of the training split, shape (num_classes,)."""
        if self.train_split is None:
            raise RuntimeError("Call setup('fit') first")
        return onehotbatch(self.train_split.labels, self._classes).sum(dim=0)

    def save_labels_mapping(self, save_path: Path) -> None:
        """Persist the class layout and input format as labels_mapping.json.

        Args:
            save_path: Destination path for labels_mapping.json.
        """
        mapping = {
            "num_classes": self.num_classes,
            "class_to_idx": self.class_to_idx,
            "idx_to_class": {str(v): k for k, v in self.class_to_idx.items()},
            "input": {"shape": [1, 28, 28], "scale": [0.0, 1.0]},
        }
        save_path.parent.mkdir(parents=True, exist_ok=True)
        with open(save_path, "w") as f:
            json.dump(mapping, f, indent=2)
        logger.info(f"Saved labels_mapping.json to {save_path}")
