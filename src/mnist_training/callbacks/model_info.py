"""Layer summary callback — traces the convnet on one blank digit at fit start."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import lightning as L
import torch
import torch.nn as nn
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table

from mnist_training.models.convnet import INPUT_SHAPE

STAGES: tuple[str, ...] = ("features", "classifier")


class ModelInfoCallback(L.Callback):
    """Print each layer's output shape and parameter count.

    A single all-zero ``(1, 1, 28, 28)`` image is pushed through the
    ``features`` and ``classifier`` stages with forward hooks attached, so
    the table shows how the 28x28 input shrinks to 7x7 maps, is flattened,
    and lands on ``num_classes`` scores. Also writes ``labels_mapping.json``
    through the datamodule, so the class layout ships with the run outputs.

    Args:
        output_dir: Directory labels_mapping.json is written to.
        save_labels_mapping: Whether to write labels_mapping.json at all.
    """

    def __init__(
        self, output_dir: str = "outputs", save_labels_mapping: bool = True
    ) -> None:
        super().__init__()
        self.output_dir = Path(output_dir)
        self.save_labels_mapping = save_labels_mapping
        self.layers: list[dict[str, Any]] = []

    def on_fit_start(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        """Trace layer shapes, print the table, write labels_mapping.json."""
        self.layers = self._trace(pl_module)
        if self.layers:
            self._print(type(pl_module).__name__)
        else:
            logger.warning(
                f"{type(pl_module).__name__} has no {' / '.join(STAGES)} stages. "
                "Skipping layer summary."
            )

        if self.save_labels_mapping:
            datamodule = getattr(trainer, "datamodule", None)
            if datamodule is not None and hasattr(datamodule, "save_labels_mapping"):
                datamodule.save_labels_mapping(self.output_dir / "labels_mapping.json")

    @torch.no_grad()
    def _trace(self, pl_module: L.LightningModule) -> list[dict[str, Any]]:
        stages = [
            (name, getattr(pl_module, name))
            for name in STAGES
            if isinstance(getattr(pl_module, name, None), nn.Sequential)
        ]
        if not stages:
            return []

        layers: list[dict[str, Any]] = []
        handles = []
        for stage_name, stage in stages:
            for idx, layer in enumerate(stage):
                row = {
                    "name": f"{stage_name}.{idx}",
                    "type": type(layer).__name__,
                    "params": sum(p.numel() for p in layer.parameters()),
                    "shape": None,
                }
                layers.append(row)

                def _hook(
                    module: nn.Module,
                    inputs: Any,
                    output: torch.Tensor,
                    row: dict[str, Any] = row,
                ) -> None:
                    row["shape"] = tuple(output.shape[1:])

                handles.append(layer.register_forward_hook(_hook))

        was_training = pl_module.training
        pl_module.eval()
        try:
            x = torch.zeros(1, *INPUT_SHAPE, device=pl_module.device)
            for _, stage in stages:
                x = stage(x)
        finally:
            for handle in handles:
                handle.remove()
            pl_module.train(was_training)
        return layers

    def _print(self, model_name: str) -> None:
        total = sum(row["params"] for row in self.layers)
        table = Table(
            title=f"{model_name} layers (input {'x'.join(map(str, INPUT_SHAPE))})",
            header_style="bold magenta",
            box=box.SQUARE,
        )
        table.add_column("Layer", style="cyan")
        table.add_column("Type")
        table.add_column("Output", justify="right", style="yellow")
        table.add_column("Params", justify="right", style="green")
        for row in self.layers:
            shape = "x".join(map(str, row["shape"])) if row["shape"] else "-"
            table.add_row(row["name"], row["type"], shape, f"{row['params']:,}")
        table.add_row("total", "", "", f"{total:,}", style="bold")
        Console().print(table)

        logger.info(
            f"{model_name}: {len(self.layers)} layers, {total:,} parameters, "
            f"output {self.layers[-1]['shape']}"
        )
