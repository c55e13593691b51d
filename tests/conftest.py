import subprocess
from pathlib import Path

import pytest

from vps_setup.config.models import PathsConfig, SetupConfig, SwapConfig
from vps_setup.host.models import HostFacts


class SpyRun:
    """
    Stand-in for subprocess.run. Records argv (and stdin) of every call and
    answers from `responses`, keyed by argv prefix tuples; the longest
    matching prefix wins. Anything unmatched succeeds with empty output.
    """

    def __init__(self, responses=None):
        self.calls = []
        self.inputs = []
        self.responses = dict(responses or {})
        self.responses.setdefault(("dpkg-query",), (0, "install ok installed", ""))

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(kwargs.get("input"))
        best = None
        for prefix, resp in self.responses.items():
            if tuple(argv[: len(prefix)]) == prefix and (best is None or len(prefix) > len(best[0])):
                best = (prefix, resp)
        rc, out, err = best[1] if best else (0, "", "")
        return subprocess.CompletedProcess(argv, rc, out, err)

    def commands(self):
        return [" ".join(c) for c in self.calls]


@pytest.fixture
def spy(monkeypatch):
    s = SpyRun()
    monkeypatch.setattr(subprocess, "run", s)
    return s


def make_config(root: Path, **overrides) -> SetupConfig:
    """Config whose every host path lives under `root`."""
    paths = {
        name: root / str(field.default).lstrip("/")
        for name, field in PathsConfig.model_fields.items()
    }
    return SetupConfig(
        paths=PathsConfig(**paths),
        swap=SwapConfig(file=root / "swapfile"),
        **overrides,
    )


@pytest.fixture
def cfg(tmp_path):
    return make_config(tmp_path)


def make_facts(**overrides) -> HostFacts:
    base = dict(
        is_root=True,
        distro_id="ubuntu",
        distro_codename="noble",
        docker_installed=False,
        tailscale_installed=False,
        tailscale_connected=False,
        tailscale_ipv4=None,
        has_root_authorized_keys=True,
        existing_non_root_user=None,
        swap_present=False,
    )
    base.update(overrides)
    return HostFacts(**base)


@pytest.fixture
def host_root(cfg):
    """Seed the files a fresh server already has."""
    p = cfg.paths
    p.root_authorized_keys.parent.mkdir(parents=True)
    p.root_authorized_keys.write_text("ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIFakeKey ops@laptop\n")
    p.sshd_config.parent.mkdir(parents=True)
    p.sshd_config.write_text(
        "Include /etc/ssh/sshd_config.d/*.conf\n"
        "#PermitRootLogin prohibit-password\n"
        "#PubkeyAuthentication yes\n"
        "PasswordAuthentication yes\n"
        "#PermitEmptyPasswords no\n"
        "UsePAM yes\n"
    )
    p.fstab.parent.mkdir(parents=True, exist_ok=True)
    p.fstab.write_text("UUID=abcd / ext4 defaults 0 1\n")
    p.sysctl_conf.write_text("#vm.swappiness=60\n")
    return cfg
