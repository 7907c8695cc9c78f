"""Optional YAML configuration for the updater.

A ``depupdate.yml`` next to the manifest (or the file given with
``--config``) may set:

    include: "(@deco/.*)|(apps)"
    required_min_versions:
      "@std/path": "1.0.0"
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Pattern

import yaml

from constants import Constants
from versioning.upgrade import PACKAGES_TO_CHECK, REQUIRED_MIN_VERSIONS

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """The configuration file exists but cannot be used."""


@dataclass
class UpdateConfig:
    """Settings for one update run."""

    include: Pattern[str] = PACKAGES_TO_CHECK
    required_min_versions: Dict[str, str] = field(
        default_factory=lambda: dict(REQUIRED_MIN_VERSIONS)
    )


def _compile_include(raw: object, source: str) -> Pattern[str]:
    if not isinstance(raw, str) or not raw:
        raise ConfigError(f"'include' in {source} must be a non-empty string")
    try:
        return re.compile(raw)
    except re.error as exc:
        raise ConfigError(f"'include' in {source} is not a valid regular expression: {exc}") from exc


def _min_versions(raw: object, source: str) -> Dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'required_min_versions' in {source} must be a mapping")
    # YAML reads unquoted 1.0 as a float
    return {str(alias): str(version) for alias, version in raw.items()}


def load_config(path: Optional[str] = None, directory: Optional[str] = None) -> UpdateConfig:
    """Load settings from ``path``, or from depupdate.yml in ``directory``.

    Args:
        path: Explicit config file. A missing explicit file is logged and ignored.
        directory: Directory searched for the default file when ``path`` is None.

    Returns:
        UpdateConfig with defaults for anything the file does not set.

    Raises:
        ConfigError: If the file is not valid YAML or has invalid values.
    """
    config = UpdateConfig()
    if path is None:
        path = os.path.join(directory or os.getcwd(), Constants.CONFIG_FILE)
        if not os.path.isfile(path):
            return config
    elif not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return config

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config {path}: {exc}") from exc

    if data is None:
        return config
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must contain a mapping")

    if "include" in data:
        config.include = _compile_include(data["include"], path)
    if "required_min_versions" in data:
        config.required_min_versions = _min_versions(data["required_min_versions"], path)
    logger.debug("Loaded config from %s", path)
    return config
