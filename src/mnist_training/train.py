"""Training entrypoint for mnist_training.

Usage:
    mnist-train                                 # defaults: one epoch, batch 128
    mnist-train data.batch_size=64              # override batch size
    mnist-train trainer.max_epochs=3            # more than one pass
    mnist-train callbacks.accuracy.interval_s=5 # report more often
"""

import sys
from typing import Any

import hydra
import lightning as L
from loguru import logger
from omegaconf import DictConfig, OmegaConf

# CRITICAL: import models to trigger @register decorators BEFORE Hydra parses config
import mnist_training.models  # noqa: F401


def build_trainer(cfg: DictConfig) -> L.Trainer:
    """Instantiate callbacks and loggers from ``cfg`` and build the Trainer."""
    loggers: list[Any] = []
    if cfg.get("logging"):
        for v in cfg.logging.values():
            if v is not None and "_target_" in v:
                loggers.append(hydra.utils.instantiate(v))

    callbacks: list[L.Callback] = []
    if cfg.get("callbacks"):
        for v in cfg.callbacks.values():
            if v is not None and "_target_" in v:
                callbacks.append(hydra.utils.instantiate(v))

    return L.Trainer(
        **dict(cfg.trainer),
        callbacks=callbacks,
        logger=loggers or False,
    )


def run(
    cfg: DictConfig, datamodule: L.LightningDataModule | None = None
) -> dict[str, float]:
    """Train for ``trainer.max_epochs`` ordered passes, then score the test split.

    ``datamodule`` replaces the one described by ``cfg.data`` when given.

    Any error raised while processing a batch aborts the run; there is no
    checkpoint to resume from.

    Returns:
        Test metrics reported by ``Trainer.test``.
    """
    L.seed_everything(cfg.get("seed", 42), workers=True)

    if datamodule is None:
        datamodule = hydra.utils.instantiate(cfg.data)
    model: L.LightningModule = hydra.utils.instantiate(cfg.model)
    trainer = build_trainer(cfg)

    trainer.fit(model, datamodule=datamodule)
    logger.info(f"Training finished after {trainer.global_step} steps")

    results = trainer.test(model, datamodule=datamodule, verbose=False)
    metrics = {k: float(v) for k, v in (results[0] if results else {}).items()}
    if "test/acc_top1" in metrics:
        logger.info(f"Test accuracy: {metrics['test/acc_top1']:.4f}")
    return metrics


@hydra.main(version_base=None, config_path="conf", config_name="train_mnist_convnet")
def main(cfg: DictConfig) -> None:
    """Run training with the given Hydra config."""
    logger.remove()
    logger.add(sys.stderr, level=cfg.get("log_level", "INFO"))

    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")
    run(cfg)


if __name__ == "__main__":
    main()
