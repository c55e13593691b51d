# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/host/models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class HostFacts:
    """
    Read-only snapshot of the host, rebuilt on every invocation.
    """
    is_root: bool
    distro_id: str                       # e.g. 'ubuntu', 'debian' ('' if undetectable)
    distro_codename: str                 # e.g. 'noble', 'bookworm'
    docker_installed: bool
    tailscale_installed: bool
    tailscale_connected: bool
    tailscale_ipv4: Optional[str]
    has_root_authorized_keys: bool
    existing_non_root_user: Optional[str]
    swap_present: bool
