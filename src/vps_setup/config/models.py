# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/config/models.py

from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
import ipaddress


class PathsConfig(BaseModel):
    """Every host path the setup reads or writes. Names are stable across versions."""

    mode_file: Path = Path("/etc/vps-setup-mode")
    version_file: Path = Path("/etc/vps-setup-version")
    update_check_script: Path = Path("/etc/profile.d/vps-setup-update-check.sh")
    log_dir: Path = Path("/var/log/vps-setup")

    os_release: Path = Path("/etc/os-release")
    root_authorized_keys: Path = Path("/root/.ssh/authorized_keys")
    sshd_config: Path = Path("/etc/ssh/sshd_config")
    sshd_config_backup: Path = Path("/etc/ssh/sshd_config.backup")
    sshd_config_dir: Path = Path("/etc/ssh/sshd_config.d")
    sshd_privsep_dir: Path = Path("/run/sshd")
    sudoers_dir: Path = Path("/etc/sudoers.d")
    home_root: Path = Path("/home")

    needrestart_dir: Path = Path("/etc/needrestart")
    apt_conf_dir: Path = Path("/etc/apt/apt.conf.d")
    apt_keyrings_dir: Path = Path("/etc/apt/keyrings")
    apt_sources_dir: Path = Path("/etc/apt/sources.list.d")

    docker_daemon_json: Path = Path("/etc/docker/daemon.json")
    iptables_rules_v4: Path = Path("/etc/iptables/rules.v4")
    iptables_rules_v6: Path = Path("/etc/iptables/rules.v6")

    fstab: Path = Path("/etc/fstab")
    sysctl_conf: Path = Path("/etc/sysctl.conf")


class PackagesConfig(BaseModel):
    base: List[str] = Field(
        default_factory=lambda: ["git", "nano", "curl", "wget", "gnupg", "ca-certificates"]
    )
    upgrade: bool = True


class DockerConfig(BaseModel):
    packages: List[str] = Field(
        default_factory=lambda: [
            "docker-ce",
            "docker-ce-cli",
            "containerd.io",
            "docker-buildx-plugin",
            "docker-compose-plugin",
        ]
    )
    repo_base_url: str = "https://download.docker.com/linux"
    log_driver: str = "json-file"
    log_max_size: str = "10m"
    log_max_file: int = Field(default=3, ge=1)


class FirewallConfig(BaseModel):
    # Fixed default bridge range; not queried from the engine.
    docker_subnet: str = "172.16.0.0/12"
    tailscale_interface: str = "tailscale0"
    tailscale_port: int = Field(default=41641, ge=1, le=65535)

    @field_validator("docker_subnet")
    @classmethod
    def _valid_cidr(cls, v: str) -> str:
        ipaddress.ip_network(v, strict=False)
        return v


class SwapConfig(BaseModel):
    file: Path = Path("/swapfile")
    size: str = "2G"
    swappiness: int = Field(default=10, ge=0, le=200)


class UpdatesConfig(BaseModel):
    release_api: str = "https://api.github.com/repos/tetrixdev/vps-setup/releases/latest"
    install_command: str = "pip install --upgrade vps-setup && sudo vps-setup apply"
    check_interval_s: int = 86400
    timeout_s: float = 5.0


class SetupConfig(BaseModel):
    username: Optional[str] = None     # used when --username is not given
    supported_distros: List[str] = Field(default_factory=lambda: ["ubuntu", "debian"])
    paths: PathsConfig = PathsConfig()
    packages: PackagesConfig = PackagesConfig()
    docker: DockerConfig = DockerConfig()
    firewall: FirewallConfig = FirewallConfig()
    swap: SwapConfig = SwapConfig()
    updates: UpdatesConfig = UpdatesConfig()
