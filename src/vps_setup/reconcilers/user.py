# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/reconcilers/user.py

from __future__ import annotations

import logging
import pwd
from pathlib import Path

from vps_setup.errors import ReconciliationError
from vps_setup.host.models import HostFacts
from vps_setup.preflight.validator import Plan
from .base import Reconciler

log = logging.getLogger("vps_setup")

GROUPS = ("sudo", "docker")


class UserReconciler(Reconciler):
    """
    - create the user if missing (bash shell, home directory)
    - sudo + docker group membership
    - root's authorized_keys copied in only if the user has none
    - passwordless sudo via /etc/sudoers.d/<user> (0440, checked with visudo)
    """

    name = "user"
    title = "Configuring user"

    def home_dir(self, username: str) -> Path:
        try:
            return Path(pwd.getpwnam(username).pw_dir)
        except KeyError:
            # not created yet (dry-run)
            return self.paths.home_root / username

    def reconcile(self, plan: Plan, facts: HostFacts) -> None:
        user = plan.username

        if self.runner.succeeds(["id", "-u", user]):
            log.info(f"User '{user}' already exists")
        else:
            self.runner.run(["useradd", "-m", "-s", "/bin/bash", user])
            log.info(f"Created user '{user}'")

        self.runner.run(["usermod", "-aG", ",".join(GROUPS), user])

        self._install_keys(user)
        self._install_sudoers(user)

        log.info(f"User '{user}' configured with sudo + docker access")

    def _install_keys(self, user: str) -> None:
        ssh_dir = self.home_dir(user) / ".ssh"
        keys = ssh_dir / "authorized_keys"

        self.files.ensure_dir(ssh_dir, mode=0o700)
        if (self.files.read_text(keys) or "").strip():
            log.info(f"{keys} already has keys, leaving it unchanged")
        else:
            root_keys = self.files.read_text(self.paths.root_authorized_keys)
            if not (root_keys or "").strip():
                raise ReconciliationError(self.name, f"{self.paths.root_authorized_keys} is empty")
            self.files.write_text(keys, root_keys, mode=0o600)
            log.info(f"Copied root's SSH keys to {keys}")

        # "user:" resolves to the login group, whatever its name
        self.runner.run(["chown", "-R", f"{user}:", str(ssh_dir)])

    def _install_sudoers(self, user: str) -> None:
        path = self.paths.sudoers_dir / user
        content = self.renderer.render("sudoers.j2", {"username": user})
        if not self.files.write_text(path, content, mode=0o440):
            return
        check = self.runner.run(["visudo", "-cf", str(path)], check=False)
        if check.returncode != 0:
            if not self.runner.dry_run:
                path.unlink(missing_ok=True)
            raise ReconciliationError(self.name, f"visudo rejected {path}: {check.stderr.strip()}")
