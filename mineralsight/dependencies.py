"""FastAPI dependency injection."""

from __future__ import annotations

from functools import lru_cache

from mineralsight.config import Settings, settings
from mineralsight.engine.materials import MaterialsConfig, load_materials


def get_settings() -> Settings:
    return settings


@lru_cache(maxsize=1)
def _configured_materials(path: str) -> MaterialsConfig:
    return load_materials(path or None)


def get_materials() -> MaterialsConfig:
    """Server-side materials, loaded once per configured path."""
    return _configured_materials(settings.materials_config_path)
