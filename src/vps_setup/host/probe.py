# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/host/probe.py

from __future__ import annotations

import logging
import os
import pwd
import shlex
import shutil
from functools import cached_property
from pathlib import Path
from typing import Dict, Optional

from vps_setup.config.models import SetupConfig
from vps_setup.execution.runner import CommandRunner
from .models import HostFacts

log = logging.getLogger("vps_setup")

# nobody
_OVERFLOW_UID = 65534
_NO_LOGIN_SHELLS = ("nologin", "false")


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse /etc/os-release (shell-style KEY=value lines)."""
    out: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("'\"")]
        out[key.strip()] = parts[0] if parts else ""
    return out


class SystemProbe:
    """
    Read-only host inspection. Every fact is queried at most once per
    instance; build a new probe for each run.
    """

    def __init__(self, config: SetupConfig, runner: Optional[CommandRunner] = None):
        self.config = config
        self.paths = config.paths
        self.runner = (runner or CommandRunner()).for_domain("probe")

    # ------------------ identity / platform ------------------

    @cached_property
    def is_root(self) -> bool:
        return os.geteuid() == 0

    @cached_property
    def os_release(self) -> Dict[str, str]:
        try:
            return parse_os_release(self.paths.os_release.read_text())
        except OSError:
            log.debug("%s not readable", self.paths.os_release)
            return {}

    @cached_property
    def distro_id(self) -> str:
        return self.os_release.get("ID", "").lower()

    @cached_property
    def distro_codename(self) -> str:
        return self.os_release.get("VERSION_CODENAME", "")

    # ------------------ tools ------------------

    @cached_property
    def docker_installed(self) -> bool:
        return shutil.which("docker") is not None

    @cached_property
    def tailscale_installed(self) -> bool:
        return shutil.which("tailscale") is not None

    @cached_property
    def tailscale_connected(self) -> bool:
        if not self.tailscale_installed:
            return False
        return self.runner.succeeds(["tailscale", "status"])

    @cached_property
    def tailscale_ipv4(self) -> Optional[str]:
        if not self.tailscale_connected:
            return None
        cp = self.runner.query(["tailscale", "ip", "-4"])
        if cp.returncode != 0:
            return None
        lines = [ln.strip() for ln in cp.stdout.splitlines() if ln.strip()]
        return lines[0] if lines else None

    # ------------------ access ------------------

    @cached_property
    def has_root_authorized_keys(self) -> bool:
        p = self.paths.root_authorized_keys
        try:
            return p.is_file() and p.stat().st_size > 0
        except OSError:
            return False

    @cached_property
    def existing_non_root_user(self) -> Optional[str]:
        for entry in pwd.getpwall():
            if entry.pw_uid < 1000 or entry.pw_uid == _OVERFLOW_UID:
                continue
            if Path(entry.pw_shell).name in _NO_LOGIN_SHELLS:
                continue
            return entry.pw_name
        return None

    # ------------------ swap ------------------

    @cached_property
    def swap_present(self) -> bool:
        if self.config.swap.file.exists():
            return True
        cp = self.runner.query(["swapon", "--show", "--noheadings"])
        return cp.returncode == 0 and bool(cp.stdout.strip())

    # ------------------ snapshot ------------------

    def snapshot(self) -> HostFacts:
        facts = HostFacts(
            is_root=self.is_root,
            distro_id=self.distro_id,
            distro_codename=self.distro_codename,
            docker_installed=self.docker_installed,
            tailscale_installed=self.tailscale_installed,
            tailscale_connected=self.tailscale_connected,
            tailscale_ipv4=self.tailscale_ipv4,
            has_root_authorized_keys=self.has_root_authorized_keys,
            existing_non_root_user=self.existing_non_root_user,
            swap_present=self.swap_present,
        )
        log.debug(f"host facts: {facts}")
        return facts
