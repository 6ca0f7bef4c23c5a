"""Dataset statistics callback — prints digit class distribution at training start."""

from __future__ import annotations

import lightning as L
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table


class DatasetStatisticsCallback(L.Callback):
    """Print a rich table of class distribution from the training split.

    Reads ``trainer.datamodule.class_counts()`` and shows one row per class
    in one-hot column order.
    """

    def on_fit_start(self, trainer: L.Trainer, pl_module: L.LightningModule) -> None:
        """Compute and display class distribution at training start."""
        datamodule = getattr(trainer, "datamodule", None)
        if datamodule is None or not hasattr(datamodule, "class_counts"):
            logger.warning(
                "No datamodule with class_counts. Skipping dataset statistics."
            )
            return

        counts = [int(c) for c in datamodule.class_counts().tolist()]
        idx_to_class = {v: k for k, v in datamodule.class_to_idx.items()}
        total = sum(counts)
        logger.info(f"Training split: {total} samples, {len(counts)} classes")

        console = Console()
        table = Table(
            title="Dataset Class Distribution",
            header_style="bold magenta",
            box=box.SQUARE,
            show_lines=True,
        )
        table.add_column("Class", style="cyan")
        table.add_column("Index", justify="right")
        table.add_column("Count", justify="right", style="green")
        table.add_column("Percentage", justify="right", style="yellow")

        for idx, count in enumerate(counts):
            pct = count / total * 100 if total > 0 else 0.0
            table.add_row(
                idx_to_class.get(idx, f"unknown_{idx}"),
                str(idx),
                str(count),
                f"{pct:.1f}%",
            )

        console.print(table)

        missing = [idx_to_class[i] for i, c in enumerate(counts) if c == 0]
        if missing:
            logger.warning(f"Classes with no training samples: {missing}")
