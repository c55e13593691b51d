# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/orchestrator.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from vps_setup import __version__
from vps_setup.config.models import SetupConfig
from vps_setup.errors import ReconciliationError, SetupError
from vps_setup.execution.files import HostFiles
from vps_setup.execution.runner import CommandRunner
from vps_setup.host.models import HostFacts
from vps_setup.host.probe import SystemProbe
from vps_setup.observers.dispatcher import EventBus
from vps_setup.observers.events import (
    PreflightFailed,
    PreflightPassed,
    RunSummary,
    StatePersisted,
    StepFailed,
    StepStarted,
    StepSucceeded,
    new_ctx,
)
from vps_setup.preflight.validator import Plan, PreflightValidator
from vps_setup.reconcilers.base import Reconciler
from vps_setup.reconcilers.docker import DockerReconciler
from vps_setup.reconcilers.firewall import FirewallReconciler
from vps_setup.reconcilers.packages import PackageReconciler
from vps_setup.reconcilers.ssh import SshReconciler
from vps_setup.reconcilers.swap import SwapReconciler
from vps_setup.reconcilers.user import UserReconciler
from vps_setup.state.mode_store import Mode, ModeStore
from vps_setup.utils.execution import ExecutionContext
from vps_setup.utils.templates import TemplateRenderer

log = logging.getLogger("vps_setup")

PUBLIC_ENDPOINT = "<your-server-ip>"

# Fixed dependency order.
RECONCILER_ORDER = (
    PackageReconciler,
    DockerReconciler,
    SshReconciler,
    UserReconciler,
    FirewallReconciler,
    SwapReconciler,
)


class RunStatus(str, Enum):
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"
    DECLINED = "DECLINED"


@dataclass
class RunReport:
    status: RunStatus
    plan: Optional[Plan] = None
    endpoint: Optional[str] = None
    steps: List[str] = field(default_factory=list)


def default_reconcilers(config: SetupConfig, runner: CommandRunner) -> List[Reconciler]:
    renderer = TemplateRenderer()
    return [cls(config, runner, renderer=renderer) for cls in RECONCILER_ORDER]


def endpoint_for(plan: Plan) -> str:
    if plan.mode is Mode.PRIVATE and plan.tailscale_ipv4:
        return plan.tailscale_ipv4
    return PUBLIC_ENDPOINT


def describe(plan: Plan, facts: HostFacts, config: SetupConfig) -> List[str]:
    """Human summary of what a run will do, shown before confirmation."""
    if plan.mode is Mode.PRIVATE:
        firewall = "Configure firewall (Tailscale-only, all public ports blocked)"
    else:
        firewall = "Configure firewall (allow SSH, HTTP, HTTPS only)"
    user = f"{'Create' if plan.create_user else 'Configure existing'} user '{plan.username}' with sudo + docker access"
    lines = [
        "Update system and enable automatic security updates",
        "Install Docker with log rotation",
        "Harden SSH (key-only, no root login)",
        user,
        firewall,
        "Keep existing swap" if facts.swap_present else f"Create {config.swap.size} swap file",
    ]
    return [f"{i}. {ln}" for i, ln in enumerate(lines, 1)]


class Orchestrator:
    """
    Probe -> Validate -> [Package, Docker, Ssh, User, Firewall, Swap] -> PersistState.

    Fail-fast: the first failing step aborts the run. Nothing is rolled
    back; every step is idempotent, so re-running converges from where the
    previous run stopped.
    """

    def __init__(
        self,
        config: SetupConfig,
        ctx: ExecutionContext = ExecutionContext(),
        *,
        runner: Optional[CommandRunner] = None,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        probe: Optional[SystemProbe] = None,
        reconcilers: Optional[Sequence[Reconciler]] = None,
        confirm: Optional[Callable[[Plan, HostFacts], bool]] = None,
        version: str = __version__,
    ):
        self.config = config
        self.ctx = ctx
        self.runner = runner or CommandRunner(dry_run=ctx.dry_run)
        self.bus = bus or EventBus()
        self.run_id = run_id
        self.probe = probe or SystemProbe(config, self.runner)
        self.reconcilers = list(reconcilers) if reconcilers is not None else default_reconcilers(config, self.runner)
        self.confirm = confirm
        self.version = version

        self.files = HostFiles(dry_run=ctx.dry_run, label="state")
        self.mode_store = ModeStore(config.paths.mode_file, config.paths.version_file, self.files)
        self.validator = PreflightValidator(
            self.mode_store,
            config.supported_distros,
            root_authorized_keys=config.paths.root_authorized_keys,
        )

    def _ctx(self) -> dict:
        return new_ctx(run_id=self.run_id)

    # ------------------------------------------------------------------
    # phases
    # ------------------------------------------------------------------

    def preflight(self, cli_mode: Optional[Mode], cli_username: Optional[str]) -> tuple[Plan, HostFacts]:
        log.info("==> Running pre-flight checks...")
        facts = self.probe.snapshot()
        try:
            plan = self.validator.validate(facts, cli_mode, cli_username or self.config.username)
        except SetupError as e:
            self.bus.emit(PreflightFailed(error=str(e), **self._ctx()))
            raise
        self.bus.emit(
            PreflightPassed(
                mode=plan.mode.value,
                username=plan.username,
                create_user=plan.create_user,
                tailscale_allowed=plan.tailscale_allowed,
                **self._ctx(),
            )
        )
        return plan, facts

    def reconcile(self, plan: Plan, facts: HostFacts) -> List[str]:
        done: List[str] = []
        total = len(self.reconcilers)
        for i, rec in enumerate(self.reconcilers, 1):
            log.info(f"==> Step {i}/{total}: {rec.title}...")
            self.bus.emit(StepStarted(step=rec.name, index=i, total=total, **self._ctx()))
            start = time.time()
            try:
                rec.reconcile(plan, facts)
            except SetupError as e:
                self.bus.emit(StepFailed(step=rec.name, error=str(e), **self._ctx()))
                raise
            except Exception as e:
                self.bus.emit(StepFailed(step=rec.name, error=str(e), **self._ctx()))
                raise ReconciliationError(rec.name, str(e)) from e
            self.bus.emit(
                StepSucceeded(step=rec.name, duration_ms=int((time.time() - start) * 1000), **self._ctx())
            )
            done.append(rec.name)
        return done

    def persist(self, plan: Plan) -> None:
        log.info("Setting up version tracking...")
        self.mode_store.commit(plan.mode)
        self.mode_store.record_version(self.version)
        self.files.write_text(
            self.config.paths.update_check_script,
            TemplateRenderer().render("update-check.sh.j2", {"command": "vps-setup"}),
            mode=0o755,
        )
        self.bus.emit(StatePersisted(mode=plan.mode.value, version=self.version, **self._ctx()))

    # ------------------------------------------------------------------
    # entrypoint
    # ------------------------------------------------------------------

    def run(self, cli_mode: Optional[Mode] = None, cli_username: Optional[str] = None) -> RunReport:
        try:
            plan, facts = self.preflight(cli_mode, cli_username)
        except SetupError as e:
            self.bus.emit(RunSummary(status=RunStatus.ABORTED.value, error=str(e), **self._ctx()))
            raise

        if self.confirm is not None and not self.ctx.assume_yes and not self.confirm(plan, facts):
            log.info("Aborted.")
            self.bus.emit(RunSummary(status=RunStatus.DECLINED.value, mode=plan.mode.value, **self._ctx()))
            return RunReport(RunStatus.DECLINED, plan=plan)

        try:
            steps = self.reconcile(plan, facts)
            self.persist(plan)
        except SetupError as e:
            self.bus.emit(
                RunSummary(status=RunStatus.ABORTED.value, mode=plan.mode.value, error=str(e), **self._ctx())
            )
            raise

        endpoint = endpoint_for(plan)
        self.bus.emit(
            RunSummary(status=RunStatus.COMPLETED.value, mode=plan.mode.value, endpoint=endpoint, **self._ctx())
        )
        return RunReport(RunStatus.COMPLETED, plan=plan, endpoint=endpoint, steps=steps)
