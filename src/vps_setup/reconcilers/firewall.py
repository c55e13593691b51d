# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/reconcilers/firewall.py

from __future__ import annotations

import logging

from vps_setup.firewall.models import ChainPlan, Family, FirewallRuleSet
from vps_setup.firewall.planner import plan as plan_firewall
from vps_setup.host.models import HostFacts
from vps_setup.preflight.validator import Plan
from vps_setup.state.mode_store import Mode
from .base import Reconciler

log = logging.getLogger("vps_setup")

DEBCONF_AUTOSAVE = (
    "iptables-persistent iptables-persistent/autosave_v4 boolean true\n"
    "iptables-persistent iptables-persistent/autosave_v6 boolean true\n"
)


class FirewallReconciler(Reconciler):
    """
    Applies the planner's rule set with full-replace semantics (flush, then
    append in planner order, then policy) and saves both families to the
    files iptables-persistent loads at boot.
    """

    name = "firewall"
    title = "Configuring firewall"

    def rule_set(self, plan: Plan) -> FirewallRuleSet:
        fw = self.config.firewall
        return plan_firewall(
            plan.mode,
            plan.tailscale_allowed,
            docker_subnet=fw.docker_subnet,
            tailscale_interface=fw.tailscale_interface,
            tailscale_port=fw.tailscale_port,
        )

    def apply_chain(self, cp: ChainPlan) -> None:
        binary = cp.family.binary
        chain = cp.chain.value
        if cp.create and not self.runner.succeeds([binary, "-n", "-L", chain]):
            self.runner.run([binary, "-N", chain])
        if cp.flush:
            self.runner.run([binary, "-F", chain])
        for rule in cp.rules:
            self.runner.run([binary, "-A", chain, *rule.to_iptables_args()])
        if cp.policy is not None:
            self.runner.run([binary, "-P", chain, cp.policy.value])

    def save(self) -> None:
        targets = (
            (Family.V4, self.paths.iptables_rules_v4),
            (Family.V6, self.paths.iptables_rules_v6),
        )
        for family, path in targets:
            dump = self.runner.run([f"{family.binary}-save"]).stdout
            if self.runner.dry_run:
                log.info(f"[{self.name}] dry-run: would save {family.value} rules to {path}")
                continue
            self.files.ensure_dir(path.parent, mode=0o755)
            self.files.write_text(path, dump, mode=0o640)

    def reconcile(self, plan: Plan, facts: HostFacts) -> None:
        self.runner.run(["debconf-set-selections"], input=DEBCONF_AUTOSAVE)
        self.apt_install(["iptables-persistent"])

        rules = self.rule_set(plan)
        for cp in rules.chains:
            log.debug(f"[{self.name}] {cp.family.value} {cp.chain.value}: {len(cp.rules)} rules")
            self.apply_chain(cp)
        if plan.tailscale_allowed and plan.mode is Mode.PUBLIC:
            log.info("Tailscale rules added (detected installation)")

        self.save()

        # flushing FORWARD drops Docker's own jump rules; a restart re-creates them
        if self.runner.succeeds(["systemctl", "is-active", "--quiet", "docker"]):
            self.runner.run(["systemctl", "restart", "docker"])

        if plan.mode is Mode.PRIVATE:
            log.info("Firewall configured: Tailscale-only access")
        else:
            log.info("Firewall configured: SSH (22), HTTP (80), HTTPS (443) open on IPv4")
