"""Tunable extraction constants, resolved from the `extraction` config section."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ExtractionSettings:
    # Max vertical distance for two fragments to share a line
    line_tolerance: float = 3
    # Client-name heuristic bounds
    client_name_scan_lines: int = 30
    client_name_min_words: int = 2
    client_name_max_words: int = 5
    client_name_min_length: int = 8
    client_name_max_length: int = 50

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]]) -> "ExtractionSettings":
        cfg = cfg or {}
        ext = cfg.get("extraction", {}) if isinstance(cfg, dict) else {}
        name_cfg = ext.get("client_name", {}) or {}
        defaults = cls()
        return cls(
            line_tolerance=float(ext.get("line_tolerance", defaults.line_tolerance)),
            client_name_scan_lines=int(name_cfg.get("scan_lines", defaults.client_name_scan_lines)),
            client_name_min_words=int(name_cfg.get("min_words", defaults.client_name_min_words)),
            client_name_max_words=int(name_cfg.get("max_words", defaults.client_name_max_words)),
            client_name_min_length=int(name_cfg.get("min_length", defaults.client_name_min_length)),
            client_name_max_length=int(name_cfg.get("max_length", defaults.client_name_max_length)),
        )


DEFAULT_SETTINGS = ExtractionSettings()
