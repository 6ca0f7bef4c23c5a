"""Tests for the accuracy, model info and dataset statistics callbacks.

Trainers are MagicMocks; models are real but tiny and run on CPU.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import torch

from mnist_training.callbacks import (
    DatasetStatisticsCallback,
    ModelInfoCallback,
    ThrottledAccuracyCallback,
)
from mnist_training.data import MNISTDataModule
from mnist_training.models import MNISTConvNet
from mnist_training.types import DigitBatch

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mock_trainer(datamodule: object = None, global_step: int = 0) -> MagicMock:
    trainer = MagicMock()
    trainer.datamodule = datamodule
    trainer.global_step = global_step
    return trainer


def _clock(times: list[float]) -> Callable[[], float]:
    it: Iterator[float] = iter(times)
    return lambda: next(it)


# ---------------------------------------------------------------------------
# ThrottledAccuracyCallback
# ---------------------------------------------------------------------------


class TestThrottledAccuracyCallback:
    def test_reports_at_most_once_per_interval(self, digit_batch: DigitBatch) -> None:
        cb = ThrottledAccuracyCallback(
            interval_s=5.0,
            eval_batch=digit_batch,
            clock=_clock([float(t) for t in range(11)]),
        )
        model = MNISTConvNet()
        trainer = _mock_trainer()
        cb.on_fit_start(trainer, model)

        for step in range(11):
            trainer.global_step = step
            cb.on_train_batch_end(trainer, model, None, digit_batch, step)

        assert [step for step, _ in cb.history] == [0, 5, 10]
        assert all(0.0 <= acc <= 1.0 for _, acc in cb.history)

    def test_perfect_model_reports_one(self, digit_batch: DigitBatch) -> None:
        """A module returning the targets themselves scores 1.0."""

        class _Oracle(torch.nn.Module):
            def forward(self, images: torch.Tensor) -> torch.Tensor:
                return digit_batch["targets"]

        oracle = _Oracle()
        oracle.device = torch.device("cpu")  # type: ignore[assignment]
        cb = ThrottledAccuracyCallback(interval_s=0.0, eval_batch=digit_batch)
        cb.on_train_batch_end(
            _mock_trainer(), oracle, None, digit_batch, 0  # type: ignore[arg-type]
        )
        assert cb.history == [(0, 1.0)]

    def test_restores_training_mode(self, digit_batch: DigitBatch) -> None:
        model = MNISTConvNet()
        model.train()
        cb = ThrottledAccuracyCallback(interval_s=0.0, eval_batch=digit_batch)
        cb.on_train_batch_end(_mock_trainer(), model, None, digit_batch, 0)
        assert model.training
        assert len(cb.history) == 1

    def test_evaluation_disables_dropout(self, digit_batch: DigitBatch) -> None:
        model = MNISTConvNet(dropout=0.9)
        model.train()
        cb = ThrottledAccuracyCallback(interval_s=0.0, eval_batch=digit_batch)
        for step in range(3):
            cb.on_train_batch_end(_mock_trainer(), model, None, digit_batch, step)
        accuracies = {acc for _, acc in cb.history}
        assert len(accuracies) == 1

    def test_eval_batch_from_datamodule(self, datamodule: MNISTDataModule) -> None:
        datamodule.setup("fit")
        cb = ThrottledAccuracyCallback()
        cb.on_fit_start(_mock_trainer(datamodule=datamodule), MNISTConvNet())
        assert cb.eval_batch is datamodule.eval_batch

    def test_missing_eval_batch_raises(self) -> None:
        cb = ThrottledAccuracyCallback()
        with pytest.raises(RuntimeError, match="eval_batch"):
            cb.on_fit_start(_mock_trainer(datamodule=None), MNISTConvNet())


# ---------------------------------------------------------------------------
# ModelInfoCallback
# ---------------------------------------------------------------------------


class TestModelInfoCallback:
    def test_writes_labels_mapping(
        self, datamodule: MNISTDataModule, tmp_path: Path
    ) -> None:
        cb = ModelInfoCallback(output_dir=str(tmp_path))
        cb.on_fit_start(_mock_trainer(datamodule=datamodule), MNISTConvNet())
        data = json.loads((tmp_path / "labels_mapping.json").read_text())
        assert data["num_classes"] == 10

    def test_skips_labels_mapping_when_disabled(
        self, datamodule: MNISTDataModule, tmp_path: Path
    ) -> None:
        cb = ModelInfoCallback(output_dir=str(tmp_path), save_labels_mapping=False)
        cb.on_fit_start(_mock_trainer(datamodule=datamodule), MNISTConvNet())
        assert not (tmp_path / "labels_mapping.json").exists()

    def test_no_datamodule(self, tmp_path: Path) -> None:
        cb = ModelInfoCallback(output_dir=str(tmp_path))
        cb.on_fit_start(_mock_trainer(datamodule=None), MNISTConvNet())
        assert not (tmp_path / "labels_mapping.json").exists()

    def test_traces_layer_output_shapes(self, tmp_path: Path) -> None:
        cb = ModelInfoCallback(output_dir=str(tmp_path), save_labels_mapping=False)
        cb.on_fit_start(_mock_trainer(), MNISTConvNet(num_classes=10))
        shapes = {row["name"]: row["shape"] for row in cb.layers}
        assert shapes["features.0"] == (16, 28, 28)
        assert shapes["features.4"] == (16, 14, 14)
        assert shapes["features.7"] == (32, 7, 7)
        assert shapes["features.8"] == (10, 7, 7)
        assert shapes["classifier.0"] == (490,)
        assert cb.layers[-1]["shape"] == (10,)

    def test_layer_params_sum_to_model_total(self, tmp_path: Path) -> None:
        model = MNISTConvNet()
        cb = ModelInfoCallback(output_dir=str(tmp_path), save_labels_mapping=False)
        cb.on_fit_start(_mock_trainer(), model)
        assert sum(row["params"] for row in cb.layers) == sum(
            p.numel() for p in model.parameters()
        )

    def test_restores_training_mode(self, tmp_path: Path) -> None:
        model = MNISTConvNet()
        model.train()
        cb = ModelInfoCallback(output_dir=str(tmp_path), save_labels_mapping=False)
        cb.on_fit_start(_mock_trainer(), model)
        assert model.training

    def test_model_without_stages_is_skipped(self, tmp_path: Path) -> None:
        model = torch.nn.Linear(4, 2)
        cb = ModelInfoCallback(output_dir=str(tmp_path), save_labels_mapping=False)
        cb.on_fit_start(_mock_trainer(), model)  # type: ignore[arg-type]
        assert cb.layers == []


# ---------------------------------------------------------------------------
# DatasetStatisticsCallback
# ---------------------------------------------------------------------------


class TestDatasetStatisticsCallback:
    def test_prints_distribution(
        self, datamodule: MNISTDataModule, capsys: pytest.CaptureFixture[str]
    ) -> None:
        datamodule.setup("fit")
        cb = DatasetStatisticsCallback()
        cb.on_fit_start(_mock_trainer(datamodule=datamodule), MNISTConvNet())
        out = capsys.readouterr().out
        assert "Dataset Class Distribution" in out
        assert "12.0%" in out  # 3 of 25 samples

    def test_no_datamodule_is_skipped(self) -> None:
        cb = DatasetStatisticsCallback()
        cb.on_fit_start(_mock_trainer(datamodule=None), MNISTConvNet())
