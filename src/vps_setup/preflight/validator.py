# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/preflight/validator.py

from __future__ import annotations

import logging
import pwd
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from vps_setup.errors import (
    InvalidUsernameError,
    NoAuthorizedKeysError,
    PrivilegeError,
    TailscaleDisconnectedError,
    TailscaleMissingError,
    UnsupportedPlatformError,
    UsernameRequiredError,
)
from vps_setup.host.models import HostFacts
from vps_setup.state.mode_store import Mode, ModeStore

log = logging.getLogger("vps_setup")

# useradd's default NAME_REGEX on Debian-family systems
_USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")


@dataclass(frozen=True)
class Plan:
    mode: Mode
    username: str
    create_user: bool            # False -> the account already exists
    tailscale_allowed: bool
    tailscale_ipv4: Optional[str] = None


def _user_exists(name: str) -> bool:
    try:
        pwd.getpwnam(name)
        return True
    except KeyError:
        return False


class PreflightValidator:
    """
    Decides whether a run may proceed. Pure reads: the first failing check
    raises and nothing on the host has been touched.
    """

    def __init__(
        self,
        mode_store: ModeStore,
        supported_distros: Iterable[str] = ("ubuntu", "debian"),
        user_exists: Callable[[str], bool] = _user_exists,
        root_authorized_keys: Path = Path("/root/.ssh/authorized_keys"),
    ):
        self.mode_store = mode_store
        self.supported_distros = tuple(supported_distros)
        self.user_exists = user_exists
        self.root_authorized_keys = root_authorized_keys

    def validate(
        self,
        facts: HostFacts,
        cli_mode: Optional[Mode],
        cli_username: Optional[str],
    ) -> Plan:
        if not facts.is_root:
            raise PrivilegeError("Please run as root: sudo vps-setup apply ...")

        if facts.distro_id not in self.supported_distros:
            detected = facts.distro_id or "unknown (no /etc/os-release)"
            raise UnsupportedPlatformError(
                f"Only {' and '.join(d.capitalize() for d in self.supported_distros)} are supported. "
                f"Detected: {detected}"
            )
        log.info(f"Detected: {facts.distro_id} {facts.distro_codename}")

        mode = self.mode_store.request_mode(cli_mode)

        if mode is Mode.PRIVATE:
            if not facts.tailscale_installed:
                raise TailscaleMissingError(
                    "Private mode requires Tailscale. Install it first:\n"
                    "  curl -fsSL https://tailscale.com/install.sh | sh\n"
                    "  sudo tailscale up --ssh"
                )
            if not facts.tailscale_connected:
                raise TailscaleDisconnectedError(
                    "Tailscale is installed but not connected. Run: sudo tailscale up --ssh"
                )
            if not facts.tailscale_ipv4:
                raise TailscaleDisconnectedError(
                    "Tailscale is connected but has no IPv4 address (tailscale ip -4 returned nothing)"
                )
            log.info(f"Tailscale connected: {facts.tailscale_ipv4}")

        username = cli_username or facts.existing_non_root_user
        if not username:
            raise UsernameRequiredError(
                "No non-root user exists on this server. Pass --username NAME to create one."
            )
        if username == "root" or not _USERNAME_RE.match(username):
            raise InvalidUsernameError(f"'{username}' is not a valid name for a non-root user")
        create_user = not self.user_exists(username)

        if not facts.has_root_authorized_keys:
            raise NoAuthorizedKeysError(
                f"No SSH keys found in {self.root_authorized_keys}. "
                "Add your SSH key first, or you'll be locked out once password login is disabled.\n"
                "  1. On your LOCAL machine, run: cat ~/.ssh/id_ed25519.pub\n"
                "  2. On this server, run:\n"
                "     mkdir -p ~/.ssh && echo 'YOUR_KEY_HERE' >> ~/.ssh/authorized_keys"
            )
        log.info("SSH key found - safe to proceed")

        return Plan(
            mode=mode,
            username=username,
            create_user=create_user,
            tailscale_allowed=facts.tailscale_installed or mode is Mode.PRIVATE,
            tailscale_ipv4=facts.tailscale_ipv4,
        )
