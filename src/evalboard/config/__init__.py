"""Configuration file loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..errors import ValidationError
from ..schemas.config import AppConfig, load_config


class ConfigManager:
    """YAML-backed configuration loader rooted at a directory."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def load(self, name: str) -> dict[str, Any]:
        """Load a YAML document by name without file extension."""
        return load_yaml(self._base_path / f"{name}.yaml")

    def load_app_config(self, name: str = "evalboard") -> AppConfig:
        path = self._base_path / f"{name}.yaml"
        if not path.exists():
            return AppConfig()
        return load_config(load_yaml(path))


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Read a YAML mapping; an empty file yields an empty mapping."""
    with Path(path).open("r", encoding="utf-8") as handle:
        try:
            loaded = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise ValidationError(f"Invalid YAML in {path}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValidationError(f"{path} must contain a YAML mapping")
    return loaded


__all__ = ["ConfigManager", "load_yaml"]
