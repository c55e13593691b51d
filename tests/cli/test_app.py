import logging

import pytest
from typer.testing import CliRunner

from conftest import make_facts
from vps_setup.cli import app as cli
from vps_setup.errors import PrivilegeError
from vps_setup.orchestrator import Orchestrator
from vps_setup.preflight.validator import Plan
from vps_setup.state.mode_store import Mode

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.delenv("VPS_SETUP_CONFIG", raising=False)
    monkeypatch.setattr("vps_setup.config.loader.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")
    yield
    logger = logging.getLogger("vps_setup")
    logger.handlers.clear()
    logger.propagate = True


@pytest.fixture
def config_file(tmp_path):
    f = tmp_path / "config.yaml"
    f.write_text(
        "paths:\n"
        f"  mode_file: {tmp_path}/mode\n"
        f"  version_file: {tmp_path}/version\n"
        f"  log_dir: {tmp_path}/log\n"
    )
    return f


def test_firewall_plan_public():
    result = runner.invoke(cli.app, ["firewall-plan", "--mode", "public"])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert "iptables -A INPUT -p tcp --dport 22 -j ACCEPT" in lines
    assert not any(ln.startswith("ip6tables -A INPUT -p tcp") for ln in lines)
    assert lines[-1] == "ip6tables -P FORWARD DROP"


def test_firewall_plan_private():
    result = runner.invoke(cli.app, ["firewall-plan", "--mode", "private"])
    assert result.exit_code == 0, result.output
    assert "--dport 22" not in result.output
    assert "iptables -A INPUT -p udp --dport 41641 -j ACCEPT" in result.output


def test_public_and_private_are_exclusive(config_file):
    result = runner.invoke(cli.app, ["apply", "--public", "--private", "--config", str(config_file)])
    assert result.exit_code == 2


def test_apply_maps_errors_to_exit_codes(config_file, monkeypatch):
    def refuse(self, mode=None, username=None):
        raise PrivilegeError("This tool must be run as root")

    monkeypatch.setattr(Orchestrator, "run", refuse)
    result = runner.invoke(cli.app, ["apply", "--public", "--config", str(config_file)])
    assert result.exit_code == 1


def test_status_reports_committed_mode(config_file, tmp_path, spy):
    (tmp_path / "mode").write_text("public\n")
    (tmp_path / "version").write_text("1.0.0\n")
    result = runner.invoke(cli.app, ["status", "--config", str(config_file)])
    assert result.exit_code == 0, result.output
    assert "mode:      Public" in result.output
    assert "version:   1.0.0" in result.output


def test_status_rejects_corrupt_record(config_file, tmp_path, spy):
    (tmp_path / "mode").write_text("hybrid\n")
    result = runner.invoke(cli.app, ["status", "--config", str(config_file)])
    assert result.exit_code == 1


def test_check_update_prints_notice(monkeypatch):
    monkeypatch.setattr(cli, "check_for_update", lambda *a, **k: "[vps-setup] Update available: 1.0.0 → 1.1.0")
    result = runner.invoke(cli.app, ["check-update"])
    assert result.exit_code == 0
    assert "Update available" in result.output


@pytest.mark.parametrize("stdin", ["", "no\n"])
def test_unanswered_or_declined_prompt_exits_zero(config_file, monkeypatch, stdin):
    plan = Plan(mode=Mode.PUBLIC, username="deploy", create_user=True, tailscale_allowed=False)
    monkeypatch.setattr(Orchestrator, "preflight", lambda self, mode, username: (plan, make_facts()))

    def must_not_run(self, plan, facts):
        raise AssertionError("reconciled without confirmation")

    monkeypatch.setattr(Orchestrator, "reconcile", must_not_run)
    result = runner.invoke(cli.app, ["apply", "--public", "--config", str(config_file)], input=stdin)
    assert result.exit_code == 0, result.output
    assert "Setup Complete" not in result.output
