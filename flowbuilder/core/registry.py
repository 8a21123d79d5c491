from __future__ import annotations

from typing import Any

from flowbuilder.models.configs import STEP_CONFIGS, TRIGGER_CONFIGS, NodeConfig


class ConfigRegistry:
    """Maps a node type tag to the config model that describes its payload."""

    def __init__(self) -> None:
        self._registry: dict[str, type[NodeConfig]] = {}

    def register(self, config_cls: type[NodeConfig]) -> None:
        name = str(config_cls.node_type)
        if name in self._registry:
            raise ValueError(f"Node type '{name}' already registered")
        self._registry[name] = config_cls

    def get(self, node_type: str) -> type[NodeConfig]:
        if node_type not in self._registry:
            raise KeyError(f"Unknown node type: '{node_type}'")
        return self._registry[node_type]

    def build(self, node_type: str, raw: NodeConfig | dict[str, Any] | None) -> NodeConfig:
        """Validate a raw payload into the model registered for ``node_type``."""
        config_cls = self.get(node_type)
        if type(raw) is config_cls:
            return raw
        if isinstance(raw, NodeConfig):
            raw = raw.dump()
        return config_cls.model_validate(raw or {})

    def construct(self, node_type: str, raw: dict[str, Any] | None) -> NodeConfig:
        """Wrap a payload without validating it, keeping every key as stored."""
        raw = raw or {}
        return self.get(node_type).model_construct(_fields_set=set(raw), **raw)

    def list_types(self) -> list[str]:
        return list(self._registry.keys())

    def __contains__(self, node_type: str) -> bool:
        return node_type in self._registry


def default_registry() -> ConfigRegistry:
    reg = ConfigRegistry()
    for config_cls in (*TRIGGER_CONFIGS, *STEP_CONFIGS):
        reg.register(config_cls)
    return reg


config_registry = default_registry()
