"""
YAML-backed configuration loader with environment-variable overrides.

- Safe defaults from config.yml
- Environment variables override deployment-specific values
- The CPI index can live inline or in its own YAML file (one "MM/YYYY": value per line)
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

import yaml


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base (override wins)."""
    out: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


def _env_override_dict() -> Dict[str, Any]:
    """
    Map env vars to config keys.
    Keep this small and explicit.
    """
    overrides: Dict[str, Any] = {}

    # CORS origins (comma-separated)
    cors_origins = os.getenv("CORS_ORIGINS")
    if cors_origins:
        origins = [o.strip() for o in cors_origins.split(",") if o.strip()]
        overrides = _deep_merge(overrides, {"app": {"cors": {"origins": origins}}})

    # Logging
    log_level = os.getenv("LOG_LEVEL")
    if log_level:
        overrides = _deep_merge(overrides, {"logging": {"level": log_level}})

    # Worker pool
    max_workers = _parse_int(os.getenv("BILLS_MAX_WORKERS"))
    if max_workers:
        overrides = _deep_merge(overrides, {"bills": {"max_workers": max_workers}})

    # Line grouping tolerance for new templates
    tolerance = _parse_float(os.getenv("LINE_TOLERANCE"))
    if tolerance is not None:
        overrides = _deep_merge(overrides, {"extraction": {"line_tolerance": tolerance}})

    cpi_path = os.getenv("CPI_INDEX_PATH")
    if cpi_path:
        overrides = _deep_merge(overrides, {"inflation": {"cpi_file": cpi_path}})

    return overrides


def load_config(path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Load config.yml and apply environment overrides, then explicit overrides.
    """
    config_path = path or os.getenv("APP_CONFIG_PATH", "config.yml")
    if not os.path.exists(config_path):
        # Safe fallback: empty config; caller must handle defaults
        cfg: Dict[str, Any] = {}
    else:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}

    cfg = _deep_merge(cfg, _env_override_dict())
    if overrides:
        cfg = _deep_merge(cfg, overrides)
    return cfg


def load_cpi_index(cfg: Dict[str, Any], base_dir: Optional[str] = None) -> Dict[str, float]:
    """
    Resolve the CPI index from `inflation.cpi_index` and `inflation.cpi_file`.

    File entries win over inline ones. A relative cpi_file is resolved
    against base_dir (usually the config file's directory).

    Raises:
        FileNotFoundError: if cpi_file is set but missing
        ValueError: if the file is not a mapping
    """
    inflation = cfg.get("inflation", {}) or {}
    index: Dict[str, float] = {str(k): float(v) for k, v in (inflation.get("cpi_index") or {}).items()}

    cpi_file = inflation.get("cpi_file")
    if cpi_file:
        if base_dir and not os.path.isabs(cpi_file):
            cpi_file = os.path.join(base_dir, cpi_file)
        with open(cpi_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"CPI file {cpi_file} must contain a mapping of 'MM/YYYY': value")
        index.update({str(k): float(v) for k, v in data.items()})

    return index

