"""Hydra ConfigStore registration for instantiable components."""

from __future__ import annotations

from typing import Any

from hydra.core.config_store import ConfigStore
from loguru import logger


def register(
    cls: type[Any] | None = None,
    *,
    group: str | None = None,
    name: str | None = None,
    **defaults: Any,
) -> type[Any] | Any:
    """Store a ``_target_`` config node for the decorated class.

    Usable bare (``@register``) or with arguments
    (``@register(group="model", name="convnet", dropout=0.1)``).

    Arguments:
        cls: The class to register.
        group: ConfigStore group. Defaults to the name of the subpackage
            holding the class, e.g. ``models`` for ``mnist_training.models.convnet``.
        name: Config name inside the group. Defaults to the class name.
        **defaults: Extra keys written into the config node.
    """

    def _store(target_cls: type[Any]) -> type[Any]:
        config_group = group or target_cls.__module__.split(".")[-2]
        config_name = name or target_cls.__name__
        node: dict[str, Any] = {
            "_target_": f"{target_cls.__module__}.{target_cls.__qualname__}",
            **defaults,
        }
        ConfigStore.instance().store(group=config_group, name=config_name, node=node)
        logger.debug(
            f"Registered {target_cls.__name__} as '{config_group}/{config_name}'"
        )
        return target_cls

    if cls is None:
        return _store
    return _store(cls)
