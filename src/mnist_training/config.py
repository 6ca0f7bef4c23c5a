"""Pydantic frozen configuration models for mnist_training."""

from pydantic import BaseModel, Field


class DataModuleConfig(BaseModel, frozen=True):
    """Configuration for MNISTDataModule.

    All fields are validated at construction time. Frozen — no mutation after creation.
    ``eval_batch_size=None`` uses the whole test split as the held-out batch.
    """

    data_root: str = "data"
    batch_size: int = Field(default=128, gt=0)
    eval_batch_size: int | None = Field(default=1000, gt=0)
    num_workers: int = 0
    pin_memory: bool = False
    download: bool = True
    num_classes: int = Field(default=10, gt=1)

    @property
    def classes(self) -> list[int]:
        """Ordered class set: the digits ``0 .. num_classes - 1``."""
        return list(range(self.num_classes))
