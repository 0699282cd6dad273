"""Configuration for the ship-log search service.

Loads from environment variables with sensible defaults.
Optionally reads a config.json file.

Note:
    Environment variables use the ``SHIPLOG_SEARCH_*`` prefix.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

EXTRACTORS = ("notes", "title_and_notes")


@dataclass
class Config:
    """Central configuration for the index service."""

    # Maps: one saved map JSON per file, id = file stem
    maps_dir: str = str(Path.home() / ".shiplog" / "maps")

    # API
    # Security: bind to localhost by default. Override with SHIPLOG_SEARCH_HOST if needed.
    api_host: str = "127.0.0.1"
    api_port: int = 8788
    api_key: str = ""  # empty disables X-API-Key checks

    # Search
    suggestion_limit: int = 12
    max_suggestion_limit: int = 50
    extractor: str = "notes"

    log_level: str = "INFO"

    def validate(self) -> list[str]:
        """Return a list of validation errors (empty == OK)."""
        errors: list[str] = []
        if self.api_port < 1 or self.api_port > 65535:
            errors.append("SHIPLOG_SEARCH_PORT must be 1-65535")
        if self.suggestion_limit < 1:
            errors.append("SHIPLOG_SEARCH_SUGGEST_LIMIT must be >= 1")
        if self.max_suggestion_limit < self.suggestion_limit:
            errors.append("max_suggestion_limit must be >= suggestion_limit")
        if self.extractor not in EXTRACTORS:
            errors.append(f"SHIPLOG_SEARCH_EXTRACTOR must be one of {', '.join(EXTRACTORS)}")
        return errors


def load_config(config_path: Optional[str] = None) -> Config:
    """Build a Config from environment variables, optionally overlaid with a JSON file.

    Environment variables (all optional):
        SHIPLOG_SEARCH_CONFIG
        SHIPLOG_SEARCH_MAPS_DIR
        SHIPLOG_SEARCH_HOST
        SHIPLOG_SEARCH_PORT
        SHIPLOG_SEARCH_API_KEY
        SHIPLOG_SEARCH_SUGGEST_LIMIT
        SHIPLOG_SEARCH_EXTRACTOR
        SHIPLOG_SEARCH_LOG_LEVEL
    """
    cfg = Config()

    # --- JSON file overlay ------------------------------------------------
    json_path = config_path or os.environ.get("SHIPLOG_SEARCH_CONFIG")
    if json_path and Path(json_path).is_file():
        with open(json_path, "r") as fh:
            data = json.load(fh)
        for key, val in data.items():
            if hasattr(cfg, key):
                expected_type = type(getattr(cfg, key))
                try:
                    setattr(cfg, key, expected_type(val))
                except (ValueError, TypeError):
                    pass  # skip bad values

    # --- Environment variable overlay -------------------------------------
    env_map: dict[str, tuple[str, type]] = {
        "SHIPLOG_SEARCH_MAPS_DIR": ("maps_dir", str),
        "SHIPLOG_SEARCH_HOST": ("api_host", str),
        "SHIPLOG_SEARCH_PORT": ("api_port", int),
        "SHIPLOG_SEARCH_API_KEY": ("api_key", str),
        "SHIPLOG_SEARCH_SUGGEST_LIMIT": ("suggestion_limit", int),
        "SHIPLOG_SEARCH_EXTRACTOR": ("extractor", str),
        "SHIPLOG_SEARCH_LOG_LEVEL": ("log_level", str),
    }

    for env_key, (attr, cast) in env_map.items():
        val = os.environ.get(env_key)
        if val is not None:
            try:
                setattr(cfg, attr, cast(val))
            except (ValueError, TypeError):
                pass

    cfg.extractor = cfg.extractor.strip().lower()
    cfg.log_level = cfg.log_level.strip().upper()
    return cfg
