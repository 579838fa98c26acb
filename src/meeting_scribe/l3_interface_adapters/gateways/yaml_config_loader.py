"""Gateway: layered YAML configuration loader.

Layers, lowest first: built-in defaults, the YAML file, explicit overrides.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path

import yaml

from meeting_scribe.l1_entities.config import AppConfig
from meeting_scribe.l3_interface_adapters.gateways.paths import DEFAULT_CONFIG_PATHS

log = logging.getLogger('msc.config')


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class YamlConfigLoader:
    def __init__(self, defaults: dict | None = None, search_paths: list[Path] | None = None) -> None:
        self._defaults = defaults or {}
        self._search_paths = DEFAULT_CONFIG_PATHS if search_paths is None else search_paths

    def resolve_path(self, config_path: str | None = None) -> Path | None:
        """Explicit path (must exist) or the first existing default location."""
        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f'Config file not found: {path}')
            return path
        return next((p for p in self._search_paths if p.exists()), None)

    def load_raw(
        self,
        config_path: str | None = None,
        overrides: dict | None = None,
    ) -> dict:
        """Return the layered data as a plain dict (before Pydantic validation)."""
        data = copy.deepcopy(self._defaults)
        path = self.resolve_path(config_path)
        if path is not None:
            try:
                file_data = yaml.safe_load(path.read_text(encoding='utf-8')) or {}
            except yaml.YAMLError as e:
                raise ValueError(f'Invalid YAML in {path}: {e}') from e
            if not isinstance(file_data, dict):
                raise ValueError(f'Config file {path} must contain a mapping at top level')
            log.debug('Loaded config from %s', path)
            deep_merge(data, file_data)
        if overrides:
            deep_merge(data, overrides)
        return data

    def load(
        self,
        config_path: str | None = None,
        overrides: dict | None = None,
    ) -> AppConfig:
        return AppConfig.model_validate(self.load_raw(config_path, overrides))
