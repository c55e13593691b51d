# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/reconcilers/packages.py

from __future__ import annotations

import logging

from vps_setup.host.models import HostFacts
from vps_setup.preflight.validator import Plan
from .base import APT_ENV, Reconciler

log = logging.getLogger("vps_setup")

NEEDRESTART_NO_PROMPT = '$nrconf{restart} = "a";\n'


class PackageReconciler(Reconciler):
    """
    - keep needrestart from prompting during unattended installs
    - refresh and upgrade the system
    - base tooling + unattended-upgrades (security origin only), enabled
    """

    name = "packages"
    title = "Updating system"

    def reconcile(self, plan: Plan, facts: HostFacts) -> None:
        if self.paths.needrestart_dir.is_dir():
            self.files.write_text(
                self.paths.needrestart_dir / "conf.d" / "no-prompt.conf",
                NEEDRESTART_NO_PROMPT,
            )

        self.runner.run(["apt-get", "update"], env=APT_ENV)
        if self.config.packages.upgrade:
            self.runner.run(["apt-get", "upgrade", "-y"], env=APT_ENV)

        self.apt_install([*self.config.packages.base, "unattended-upgrades"])

        log.info("Configuring automatic security updates...")
        self.files.write_text(
            self.paths.apt_conf_dir / "50unattended-upgrades",
            self.renderer.render("50unattended-upgrades.j2", {}),
        )
        self.files.write_text(
            self.paths.apt_conf_dir / "20auto-upgrades",
            self.renderer.render("20auto-upgrades.j2", {"autoclean_interval": 7}),
        )

        self.runner.run(["systemctl", "enable", "--now", "unattended-upgrades"])
        log.info("System updated, automatic security updates enabled")
