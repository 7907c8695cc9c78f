"""Manifest package.

Reads deno.json / import map documents, applies the upgrade engine and
writes changed documents back:
- import_map.py: discovery (including workspaces) and persistence
- config.py: optional YAML configuration
"""

from .config import ConfigError, UpdateConfig, load_config
from .import_map import (
    ManifestError,
    find_deno_json,
    iter_import_maps,
    update,
    updated_import_maps,
    write_import_map,
)

__all__ = [
    "ConfigError",
    "UpdateConfig",
    "load_config",
    "ManifestError",
    "find_deno_json",
    "iter_import_maps",
    "update",
    "updated_import_maps",
    "write_import_map",
]
