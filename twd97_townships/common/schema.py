"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from twd97_townships.common.errors import ConfigError

TOP_LEVEL_KEYS = {"region", "parser", "batch", "classifier", "output"}


def _assert_mapping(obj: object, ctx: str) -> dict:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    return obj


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_number(value: object, ctx: str, *, allow_zero: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{ctx} must be a number")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigError(f"{ctx} must be {'non-negative' if allow_zero else 'positive'}")


def _validate_region(region: dict) -> None:
    _assert_required_keys(region, {"name", "townships", "bbox_wgs84"}, "region")
    townships = region["townships"]
    if not isinstance(townships, list) or not townships:
        raise ConfigError("region.townships must be a non-empty list")
    if any(not isinstance(name, str) or not name.strip() for name in townships):
        raise ConfigError("region.townships must contain non-empty strings")
    dupes = {name for name in townships if townships.count(name) > 1}
    if dupes:
        raise ConfigError(f"Duplicate townships: {', '.join(sorted(dupes))}")

    bbox = _assert_mapping(region["bbox_wgs84"], "region.bbox_wgs84")
    _assert_required_keys(bbox, {"min_lat", "max_lat", "min_lon", "max_lon"}, "region.bbox_wgs84")
    if bbox["min_lat"] >= bbox["max_lat"] or bbox["min_lon"] >= bbox["max_lon"]:
        raise ConfigError("region.bbox_wgs84 minimums must be below maximums")


def validate_region_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_mapping(cfg, "region config")
    _assert_required_keys(cfg, TOP_LEVEL_KEYS, "region config")
    _assert_no_unknown_keys(cfg, TOP_LEVEL_KEYS, "region config", allow_unknown)
    for key in TOP_LEVEL_KEYS:
        _assert_mapping(cfg[key], key)

    _validate_region(cfg["region"])

    _assert_required_keys(cfg["parser"], {"header_markers", "min_easting", "min_northing"}, "parser")
    if not isinstance(cfg["parser"]["header_markers"], list):
        raise ConfigError("parser.header_markers must be a list")
    _assert_positive_number(cfg["parser"]["min_easting"], "parser.min_easting", allow_zero=True)
    _assert_positive_number(cfg["parser"]["min_northing"], "parser.min_northing", allow_zero=True)

    _assert_required_keys(cfg["batch"], {"chunk_size", "inter_chunk_delay_ms"}, "batch")
    chunk_size = cfg["batch"]["chunk_size"]
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
        raise ConfigError("batch.chunk_size must be a positive integer")
    _assert_positive_number(cfg["batch"]["inter_chunk_delay_ms"], "batch.inter_chunk_delay_ms", allow_zero=True)

    _assert_required_keys(
        cfg["classifier"],
        {"endpoint", "model", "api_key_env", "grounding", "timeout_seconds", "max_attempts"},
        "classifier",
    )
    if not isinstance(cfg["classifier"]["grounding"], bool):
        raise ConfigError("classifier.grounding must be a boolean")
    _assert_positive_number(cfg["classifier"]["timeout_seconds"], "classifier.timeout_seconds")
    _assert_positive_number(cfg["classifier"]["max_attempts"], "classifier.max_attempts")

    _assert_required_keys(cfg["output"], {"csv_filename"}, "output")

    return cfg
