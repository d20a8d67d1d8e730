"""Reader configuration.

Settings come from an optional YAML file overlaid with ``NEOSBK_*`` environment
variables. The file groups keys by section::

    assets:
      dir: ~/NeosBackup/Assets
      verify_hashes: false
    decode:
      max_uncompressed_bytes: 1073741824
      max_slot_depth: 512
    records:
      strict: false
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "NEOSBK_"
DEFAULT_CONFIG_PATH = Path("~/.config/neos-backup/config.yaml")
DEFAULT_MAX_UNCOMPRESSED_BYTES = 1 << 30

# section -> {yaml key: Settings field}
_SECTIONS: Mapping[str, Mapping[str, str]] = {
    "assets": {"dir": "assets_dir", "verify_hashes": "verify_hashes"},
    "decode": {"max_uncompressed_bytes": "max_uncompressed_bytes", "max_slot_depth": "max_slot_depth"},
    "records": {"strict": "strict"},
}


class Settings(BaseModel):
    """Limits and locations used by the asset pipeline."""

    assets_dir: Path | None = None
    max_uncompressed_bytes: int = Field(default=DEFAULT_MAX_UNCOMPRESSED_BYTES, gt=0)
    max_slot_depth: int = Field(default=512, gt=0)
    strict: bool = False
    verify_hashes: bool = False

    model_config = {"validate_assignment": True, "extra": "ignore"}

    @field_validator("assets_dir", mode="before")
    @classmethod
    def _expand_assets_dir(cls, value: Any) -> Path | None:
        if value is None or value == "":
            return None
        if isinstance(value, (str, Path)):
            return Path(value).expanduser()
        raise TypeError("assets_dir must be a path or string")

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Build settings from ``path`` (or the default locations) plus the environment."""
        data: dict[str, Any] = {}
        config_path = _config_path(path)
        if config_path is not None and config_path.is_file():
            data.update(_read_sections(config_path))
        data.update(_env_overrides())
        return cls(**data)


def _config_path(path: Path | None) -> Path | None:
    if path is not None:
        return path.expanduser()
    from_env = os.environ.get(f"{ENV_PREFIX}CONFIG")
    if from_env:
        return Path(from_env).expanduser()
    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.exists() else None


def _read_sections(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    values: dict[str, Any] = {}
    for section, keys in _SECTIONS.items():
        body = raw.get(section) or {}
        for key, field_name in keys.items():
            if key in body:
                values[field_name] = body[key]
    return values


def _env_overrides() -> dict[str, Any]:
    """``NEOSBK_MAX_SLOT_DEPTH=32`` sets ``max_slot_depth``; unknown names are ignored."""
    overrides: dict[str, Any] = {}
    for field_name in Settings.model_fields:
        value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if value is not None:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings", "DEFAULT_MAX_UNCOMPRESSED_BYTES"]
