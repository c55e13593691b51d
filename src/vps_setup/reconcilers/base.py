# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/reconcilers/base.py

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from vps_setup.config.models import SetupConfig
from vps_setup.execution.files import HostFiles
from vps_setup.execution.runner import CommandRunner
from vps_setup.host.models import HostFacts
from vps_setup.preflight.validator import Plan
from vps_setup.utils.templates import TemplateRenderer

log = logging.getLogger("vps_setup")

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class Reconciler(ABC):
    """
    Drives one configuration domain to its target state.

    Implementations must be idempotent: any number of calls converge on the
    same end state, whatever the starting state. Failures raise
    ReconciliationError through the domain's CommandRunner / HostFiles.
    """

    name: str = "base"
    title: str = ""

    def __init__(
        self,
        config: SetupConfig,
        runner: CommandRunner,
        files: Optional[HostFiles] = None,
        renderer: Optional[TemplateRenderer] = None,
    ):
        self.config = config
        self.paths = config.paths
        self.runner = runner.for_domain(self.name)
        self.files = files or HostFiles(dry_run=runner.dry_run)
        self.files.label = self.name
        self.renderer = renderer or TemplateRenderer()

    @abstractmethod
    def reconcile(self, plan: Plan, facts: HostFacts) -> None:
        ...

    # ------------------ apt helpers ------------------

    def missing_packages(self, packages: Iterable[str]) -> List[str]:
        missing = []
        for pkg in packages:
            cp = self.runner.query(["dpkg-query", "-W", "-f=${Status}", pkg])
            if cp.returncode != 0 or "install ok installed" not in cp.stdout:
                missing.append(pkg)
        return missing

    def apt_install(self, packages: Iterable[str]) -> None:
        packages = list(packages)
        missing = self.missing_packages(packages)
        if not missing:
            log.info(f"[{self.name}] packages already installed: {', '.join(packages)}")
            return
        self.runner.run(["apt-get", "install", "-y", *missing], env=APT_ENV)
