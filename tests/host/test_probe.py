import pwd

from vps_setup.host import probe as probe_mod
from vps_setup.host.probe import SystemProbe, parse_os_release

UBUNTU = '''PRETTY_NAME="Ubuntu 24.04.1 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION_CODENAME=noble
ID=ubuntu
ID_LIKE=debian
'''


def _pw(name, uid, shell="/bin/bash"):
    return pwd.struct_passwd((name, "x", uid, uid, "", f"/home/{name}", shell))


def test_parse_os_release():
    info = parse_os_release(UBUNTU)
    assert info["ID"] == "ubuntu"
    assert info["VERSION_CODENAME"] == "noble"
    assert info["PRETTY_NAME"] == "Ubuntu 24.04.1 LTS"


def test_snapshot(cfg, spy, monkeypatch):
    cfg.paths.os_release.parent.mkdir(parents=True, exist_ok=True)
    cfg.paths.os_release.write_text(UBUNTU)
    cfg.paths.root_authorized_keys.parent.mkdir(parents=True)
    cfg.paths.root_authorized_keys.write_text("ssh-ed25519 AAAA ops\n")
    spy.responses[("tailscale", "ip", "-4")] = (0, "100.64.0.5\n", "")
    spy.responses[("swapon",)] = (0, "", "")

    monkeypatch.setattr(probe_mod.os, "geteuid", lambda: 0)
    monkeypatch.setattr(probe_mod.shutil, "which", lambda b: "/usr/bin/tailscale" if b == "tailscale" else None)
    monkeypatch.setattr(
        probe_mod.pwd,
        "getpwall",
        lambda: [
            _pw("root", 0),
            _pw("svc", 1001, "/usr/sbin/nologin"),
            _pw("nobody", 65534),
            _pw("alice", 1000),
        ],
    )

    facts = SystemProbe(cfg).snapshot()

    assert facts.is_root
    assert (facts.distro_id, facts.distro_codename) == ("ubuntu", "noble")
    assert not facts.docker_installed
    assert facts.tailscale_installed and facts.tailscale_connected
    assert facts.tailscale_ipv4 == "100.64.0.5"
    assert facts.has_root_authorized_keys
    assert facts.existing_non_root_user == "alice"
    assert not facts.swap_present


def test_facts_are_queried_once(cfg, spy, monkeypatch):
    monkeypatch.setattr(probe_mod.shutil, "which", lambda b: "/usr/bin/" + b)
    p = SystemProbe(cfg)
    p.snapshot()
    p.snapshot()
    assert spy.commands().count("tailscale status") == 1
    assert spy.commands().count("swapon --show --noheadings") == 1


def test_missing_tailscale_and_keys(cfg, spy, monkeypatch):
    monkeypatch.setattr(probe_mod.shutil, "which", lambda b: None)
    cfg.swap.file.write_text("")
    p = SystemProbe(cfg)
    assert not p.tailscale_connected
    assert p.tailscale_ipv4 is None
    assert not p.has_root_authorized_keys
    assert p.swap_present
    assert p.distro_id == ""
    assert spy.calls == []
