# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/reconcilers/docker.py

from __future__ import annotations

import json
import logging

from vps_setup.host.models import HostFacts
from vps_setup.preflight.validator import Plan
from .base import APT_ENV, Reconciler

log = logging.getLogger("vps_setup")


class DockerReconciler(Reconciler):
    """
    Installs Docker Engine from the upstream apt repository when no docker
    binary is present (never reinstalls or upgrades), then always rewrites
    the daemon log-rotation config and restarts the engine.
    """

    name = "docker"
    title = "Installing Docker"

    def daemon_config(self) -> str:
        d = self.config.docker
        cfg = {
            "log-driver": d.log_driver,
            "log-opts": {
                "max-size": d.log_max_size,
                "max-file": str(d.log_max_file),
            },
        }
        return json.dumps(cfg, indent=4) + "\n"

    def install(self, facts: HostFacts) -> None:
        d = self.config.docker
        repo_url = f"{d.repo_base_url}/{facts.distro_id}"
        keyring = self.paths.apt_keyrings_dir / "docker.asc"

        self.files.ensure_dir(self.paths.apt_keyrings_dir, mode=0o755)
        self.runner.run(["curl", "-fsSL", f"{repo_url}/gpg", "-o", str(keyring)])
        self.runner.run(["chmod", "a+r", str(keyring)])

        arch = self.runner.query(["dpkg", "--print-architecture"]).stdout.strip() or "amd64"
        self.files.write_text(
            self.paths.apt_sources_dir / "docker.list",
            self.renderer.render(
                "docker.list.j2",
                {
                    "arch": arch,
                    "keyring": keyring,
                    "repo_url": repo_url,
                    "codename": facts.distro_codename,
                },
            ),
        )

        self.runner.run(["apt-get", "update"], env=APT_ENV)
        self.runner.run(["apt-get", "install", "-y", *d.packages], env=APT_ENV)

    def reconcile(self, plan: Plan, facts: HostFacts) -> None:
        if facts.docker_installed:
            log.info("Docker already installed, skipping installation")
        else:
            self.install(facts)

        log.info("Configuring Docker log rotation...")
        self.files.ensure_dir(self.paths.docker_daemon_json.parent, mode=0o755)
        self.files.write_text(self.paths.docker_daemon_json, self.daemon_config())

        self.runner.run(["systemctl", "restart", "docker"])
        log.info("Docker installed and configured")
