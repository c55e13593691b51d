# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/reconcilers/ssh.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

from vps_setup.errors import ReconciliationError
from vps_setup.host.models import HostFacts
from vps_setup.preflight.validator import Plan
from vps_setup.utils.confedit import DirectiveFile
from .base import Reconciler

log = logging.getLogger("vps_setup")

HARDENING: Dict[str, str] = {
    "PasswordAuthentication": "no",
    "PermitRootLogin": "no",
    "PubkeyAuthentication": "yes",
    "PermitEmptyPasswords": "no",
}

DROPIN_NAME = "00-vps-setup.conf"


def harden(text: str) -> str:
    """Apply the hardening directives to sshd_config text (idempotent)."""
    doc = DirectiveFile.parse(text)
    for key, value in HARDENING.items():
        doc.set(key, value)
    return doc.serialize()


class SshReconciler(Reconciler):
    """
    Key-only SSH, no root login.

    The original sshd_config is backed up once and never overwritten. When
    sshd_config includes sshd_config.d/*.conf, a drop-in that sorts first is
    written as well, since sshd keeps the first value it reads and cloud
    images often ship drop-ins that re-enable password login.
    """

    name = "ssh"
    title = "Hardening SSH"

    def reconcile(self, plan: Plan, facts: HostFacts) -> None:
        cfg_path = self.paths.sshd_config
        current = self.files.read_text(cfg_path)
        if current is None:
            raise ReconciliationError(self.name, f"{cfg_path} not found; is openssh-server installed?")

        if self.files.copy_once(cfg_path, self.paths.sshd_config_backup):
            log.info(f"Backed up original config to {self.paths.sshd_config_backup}")

        hardened = harden(current)
        self.files.write_text(cfg_path, hardened)
        self._warn_on_match_blocks(cfg_path, hardened)

        if self._includes_dropins(current):
            self.files.write_text(
                self.paths.sshd_config_dir / DROPIN_NAME,
                "# Managed by vps-setup\n" + "".join(f"{k} {v}\n" for k, v in HARDENING.items()),
            )
        self._warn_on_overrides()

        self.files.ensure_dir(self.paths.sshd_privsep_dir, mode=0o755)
        self.runner.run(["sshd", "-t", "-f", str(cfg_path)])

        # restart keeps established sessions alive
        if self.runner.run(["systemctl", "restart", "ssh"], check=False).returncode != 0:
            self.runner.run(["systemctl", "restart", "sshd"])

        log.info("SSH hardened: password auth disabled, root login disabled")

    def _includes_dropins(self, text: str) -> bool:
        if not self.paths.sshd_config_dir.is_dir():
            return False
        doc = DirectiveFile.parse(text)
        return any(
            ln.key == "include" and not ln.commented and str(self.paths.sshd_config_dir) in (ln.value or "")
            for ln in doc.lines
        )

    def _warn_on_match_blocks(self, path: Path, text: str) -> None:
        doc = DirectiveFile.parse(text)
        for key, want in HARDENING.items():
            for block, have in doc.in_match_blocks(key):
                if (have or "").lower() != want:
                    log.warning(f"{path}: '{block}' sets '{key} {have}' for matching connections; left unchanged")

    def _warn_on_overrides(self) -> None:
        d = self.paths.sshd_config_dir
        if not d.is_dir():
            return
        for conf in sorted(d.glob("*.conf")):
            if conf.name == DROPIN_NAME:
                continue
            doc = DirectiveFile.parse(self.files.read_text(conf) or "")
            for key, want in HARDENING.items():
                have = doc.get(key)
                if have is not None and have.lower() != want:
                    log.warning(f"{conf} sets '{key} {have}'; {DROPIN_NAME} is read first and overrides it")
