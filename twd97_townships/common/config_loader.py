"""Configuration loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from twd97_townships.common.errors import ConfigError
from twd97_townships.common.fs import read_yaml
from twd97_townships.common.schema import validate_region_config


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    return _deep_merge(base, overlay)


def available_regions(config_dir: Path) -> list[str]:
    return sorted(path.stem for path in config_dir.glob("*.yml"))


def load_region_config(
    config_dir: Path,
    region: str,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> dict:
    path = config_dir / f"{region}.yml"
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / path.name
    cfg = _load_yaml_with_overlay(path, overlay_path)
    return validate_region_config(cfg, allow_unknown=allow_unknown)
