# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from vps_setup import __version__
from vps_setup.config.loader import load_config
from vps_setup.errors import SetupError
from vps_setup.execution.runner import CommandRunner
from vps_setup.firewall.planner import plan as plan_firewall
from vps_setup.host.probe import SystemProbe
from vps_setup.logging.log import init_logging
from vps_setup.observers.dispatcher import EventBus
from vps_setup.observers.jsonfile import JsonFileObserver
from vps_setup.observers.logger import LoggerObserver
from vps_setup.orchestrator import Orchestrator, RunReport, RunStatus, describe
from vps_setup.state.mode_store import Mode, ModeStore
from vps_setup.updates import check_for_update
from vps_setup.utils.execution import ExecutionContext


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(
    help="Secure a fresh Ubuntu/Debian server as a Docker host (public web server or Tailscale-only).",
    no_args_is_help=True,
)


def resolve_mode_flag(public: bool, private: bool) -> Optional[Mode]:
    """Turn the two mutually exclusive flags into a Mode (or None)."""
    if public and private:
        raise typer.BadParameter("--public and --private are mutually exclusive")
    if public:
        return Mode.PUBLIC
    if private:
        return Mode.PRIVATE
    return None


def _print_summary(report: RunReport) -> None:
    plan = report.plan
    private = plan.mode is Mode.PRIVATE
    typer.echo("")
    typer.echo("=" * 77)
    typer.secho("Setup Complete!", fg=typer.colors.GREEN)
    typer.echo("=" * 77)
    typer.echo("")
    typer.echo("Your server is now configured with:")
    typer.echo("  ✓ Automatic security updates")
    typer.echo("  ✓ Docker with log rotation")
    typer.echo("  ✓ SSH: key-only, no root login")
    typer.echo(f"  ✓ User '{plan.username}' with sudo + docker")
    if private:
        typer.echo("  ✓ Firewall: Tailscale-only (all public ports blocked)")
    else:
        typer.echo("  ✓ Firewall: only ports 22, 80, 443 open (IPv4)")
    typer.echo("  ✓ Swap enabled")
    typer.echo("")
    typer.echo("Connect via:")
    typer.echo(f"  ssh {plan.username}@{report.endpoint}")
    typer.echo("")
    typer.secho("IMPORTANT: Root login is now disabled.", fg=typer.colors.YELLOW)
    typer.secho("Test the new user login BEFORE closing this session!", fg=typer.colors.YELLOW)
    typer.echo("")


def _confirm(config):
    def ask(plan, facts) -> bool:
        typer.echo("")
        if plan.mode is Mode.PRIVATE:
            typer.secho("PRIVATE MODE: Server will only be accessible via Tailscale", fg=typer.colors.YELLOW)
        else:
            typer.secho("PUBLIC MODE: Ports 22, 80, 443 will be open to the internet", fg=typer.colors.YELLOW)
        typer.echo("")
        typer.echo("This will:")
        for line in describe(plan, facts, config):
            typer.echo(f"  {line}")
        if plan.mode is Mode.PRIVATE:
            typer.echo("")
            typer.secho(f"Make sure you're connected via Tailscale IP: {plan.tailscale_ipv4}", fg=typer.colors.YELLOW)
            typer.secho("Public IP access will be completely blocked!", fg=typer.colors.YELLOW)
        elif facts.tailscale_installed:
            typer.echo("")
            typer.echo("  Tailscale detected - will also allow Tailscale traffic")
        typer.echo("")
        try:
            answer = typer.prompt("Proceed? (yes/no)", default="no")
        except typer.Abort:
            # stdin closed or Ctrl-C: same as answering no
            typer.echo("")
            return False
        return answer.strip().lower() == "yes"
    return ask


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def apply(
    public: bool = typer.Option(False, "--public", help="Public web server: ports 22, 80, 443 open"),
    private: bool = typer.Option(False, "--private", help="Tailscale-only: no public ports"),
    username: Optional[str] = typer.Option(None, "--username", help="Non-root user to create or configure"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Log every change without applying it"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug output on the console"),
):
    """
    Bring this server to the hardened target state. Safe to re-run.

    The mode is remembered after the first successful run; later runs may
    omit it, and requesting the other mode is refused.
    """
    mode = resolve_mode_flag(public, private)
    cfg = load_config(config)
    logger, run_id, log_path = init_logging(base_dir=cfg.paths.log_dir, verbose=verbose)

    observers = [LoggerObserver(logger)]
    if log_path is not None:
        observers.append(JsonFileObserver(log_path.with_suffix(".jsonl")))
    bus = EventBus(observers=observers)

    ctx = ExecutionContext(dry_run=dry_run, assume_yes=yes)
    orchestrator = Orchestrator(
        cfg,
        ctx,
        runner=CommandRunner(logger=logger, dry_run=dry_run),
        bus=bus,
        run_id=run_id,
        confirm=_confirm(cfg),
    )

    try:
        report = orchestrator.run(mode, username)
    except SetupError as e:
        logger.error(str(e))
        raise typer.Exit(code=e.exit_code)

    if report.status is RunStatus.COMPLETED:
        _print_summary(report)


@app.command()
def status(
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
):
    """Show the committed mode, last applied version and live host facts."""
    cfg = load_config(config)
    store = ModeStore(cfg.paths.mode_file, cfg.paths.version_file)
    try:
        state = store.load_state()
    except SetupError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=e.exit_code)

    facts = SystemProbe(cfg).snapshot()
    typer.echo(f"mode:      {state.mode.label if state.mode else '(not set up)'}")
    typer.echo(f"version:   {state.version or '-'} (tool {__version__})")
    typer.echo(f"distro:    {facts.distro_id or '?'} {facts.distro_codename}")
    typer.echo(f"docker:    {'installed' if facts.docker_installed else 'not installed'}")
    ts = "not installed"
    if facts.tailscale_installed:
        ts = f"connected ({facts.tailscale_ipv4})" if facts.tailscale_connected else "installed, not connected"
    typer.echo(f"tailscale: {ts}")
    typer.echo(f"swap:      {'present' if facts.swap_present else 'none'}")


@app.command("firewall-plan")
def firewall_plan(
    mode: Mode = typer.Option(..., "--mode", case_sensitive=False, help="Mode to plan for"),
    tailscale: bool = typer.Option(False, "--tailscale", help="Plan as if Tailscale is installed"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
):
    """Print the iptables commands a run would apply, without touching the host."""
    fw = load_config(config).firewall
    rules = plan_firewall(
        mode,
        tailscale,
        docker_subnet=fw.docker_subnet,
        tailscale_interface=fw.tailscale_interface,
        tailscale_port=fw.tailscale_port,
    )
    for argv in rules.commands():
        typer.echo(" ".join(argv))


@app.command("check-update")
def check_update(
    config: Optional[Path] = typer.Option(None, "--config", help="YAML config file"),
):
    """Print an advisory if a newer release exists (at most once a day)."""
    cfg = load_config(config)
    notice = check_for_update(cfg.paths.version_file, cfg.updates)
    if notice:
        typer.echo("")
        typer.secho(notice, fg=typer.colors.YELLOW)
        typer.echo("")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
