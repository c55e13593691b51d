# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/reconcilers/swap.py

from __future__ import annotations

import logging

from vps_setup.host.models import HostFacts
from vps_setup.preflight.validator import Plan
from vps_setup.utils.confedit import DirectiveFile
from .base import Reconciler

log = logging.getLogger("vps_setup")


class SwapReconciler(Reconciler):
    """Swap file + swappiness, only when the host has no swap of any kind."""

    name = "swap"
    title = "Configuring swap"

    def reconcile(self, plan: Plan, facts: HostFacts) -> None:
        if facts.swap_present:
            log.info("Swap already exists, skipping")
            return

        s = self.config.swap
        swapfile = str(s.file)

        self.runner.run(["fallocate", "-l", s.size, swapfile])
        self.runner.run(["chmod", "600", swapfile])
        self.runner.run(["mkswap", swapfile])
        self.runner.run(["swapon", swapfile])

        self.files.append_line(self.paths.fstab, f"{swapfile} none swap sw 0 0")

        doc = DirectiveFile.parse(self.files.read_text(self.paths.sysctl_conf) or "", separator="=")
        doc.set("vm.swappiness", str(s.swappiness))
        self.files.write_text(self.paths.sysctl_conf, doc.serialize())
        self.runner.run(["sysctl", "-w", f"vm.swappiness={s.swappiness}"])

        log.info(f"{s.size} swap file created")
