"""Depot configuration loading."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import yaml

from . import DEPOT_PATH
from .models import SpacesConfig

logger = logging.getLogger("scratchspaces.config")

CONFIG_RELPATH = Path("config") / "scratchspaces.yaml"


def config_path(depot: Union[str, Path]) -> Path:
    """Location of the config file inside a depot."""
    return Path(depot).expanduser() / CONFIG_RELPATH


def load_config(depot: Optional[Union[str, Path]] = None) -> SpacesConfig:
    """Load scratch space configuration for a depot.

    Args:
        depot: Depot directory. Defaults to $SCRATCHSPACES_DEPOT or ~/.scratchdepot.

    Returns:
        SpacesConfig loaded from config/scratchspaces.yaml, or defaults.
        The depot field always reflects ``depot``.
    """
    depot_dir = Path(depot or DEPOT_PATH).expanduser()
    config_file = config_path(depot_dir)
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text()) or {}
            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")
            data.pop("depot", None)
            return SpacesConfig(depot=depot_dir, **data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config %s: %s; using defaults", config_file, exc)
    return SpacesConfig(depot=depot_dir)
