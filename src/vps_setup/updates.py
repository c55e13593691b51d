# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/updates.py

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional

import requests

from vps_setup.config.models import UpdatesConfig

log = logging.getLogger("vps_setup")


def stamp_path(uid: Optional[int] = None) -> Path:
    uid = os.getuid() if uid is None else uid
    return Path(f"/tmp/.vps-setup-check-{uid}")


def _due(stamp: Path, interval_s: int, now: float) -> bool:
    try:
        return now - stamp.stat().st_mtime >= interval_s
    except FileNotFoundError:
        return True


def fetch_latest_version(url: str, timeout: float = 5.0) -> Optional[str]:
    """Latest release tag from the release API, without a leading 'v'."""
    try:
        resp = requests.get(url, timeout=timeout, headers={"Accept": "application/vnd.github+json"})
        resp.raise_for_status()
        tag = resp.json().get("tag_name")
    except (requests.RequestException, ValueError) as e:
        log.debug(f"update check failed: {e}")
        return None
    if not tag:
        return None
    return tag[1:] if tag.startswith("v") else tag


def check_for_update(
    version_file: Path,
    cfg: UpdatesConfig,
    *,
    stamp: Optional[Path] = None,
    now: Optional[float] = None,
) -> Optional[str]:
    """
    Advisory notice when a newer release exists, else None.

    Runs at most once per `cfg.check_interval_s` per stamp file (one per
    user); the stamp is touched whether or not the remote answered.
    """
    stamp = stamp or stamp_path()
    now = time.time() if now is None else now

    try:
        local = version_file.read_text().strip()
    except OSError:
        return None
    if not local or not _due(stamp, cfg.check_interval_s, now):
        return None

    remote = fetch_latest_version(cfg.release_api, cfg.timeout_s)
    try:
        stamp.touch()
        os.utime(stamp, (now, now))
    except OSError as e:
        log.debug(f"cannot update {stamp}: {e}")

    if remote and remote != local:
        return (
            f"[vps-setup] Update available: {local} → {remote}\n"
            f"  {cfg.install_command}"
        )
    return None
