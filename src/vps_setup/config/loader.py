# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from typing import Optional

from .models import SetupConfig

log = logging.getLogger("vps_setup")

DEFAULT_CONFIG_PATH = Path("/etc/vps-setup/config.yaml")


def _find_config_file(path: Optional[Path]) -> Optional[Path]:
    """
    Locate the config file using this priority:

    1. explicit --config path (must exist)
    2. VPS_SETUP_CONFIG environment variable
    3. /etc/vps-setup/config.yaml
    """
    if path is not None:
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        return path

    env = os.environ.get("VPS_SETUP_CONFIG")
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("VPS_SETUP_CONFIG=%s does not exist, using defaults", env)
        return None

    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def load_config(path: str | Path | None = None) -> SetupConfig:
    """
    Load and validate the setup config.

    Every key is optional; a missing file yields the built-in defaults,
    which match a stock Ubuntu 24.04 / Debian 12 server.
    """
    found = _find_config_file(Path(path) if path is not None else None)
    if found is None:
        log.debug("No config file found, using defaults")
        return SetupConfig()

    log.debug("Loading config from %s", found)
    return SetupConfig.model_validate(_load_yaml(found))
