# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/firewall/planner.py

from __future__ import annotations

from typing import List

from vps_setup.state.mode_store import Mode
from .models import Action, Chain, ChainPlan, Family, FirewallRule, FirewallRuleSet

PUBLIC_HOST_PORTS = (22, 80, 443)
PUBLIC_CONTAINER_PORTS = (80, 443)

ESTABLISHED = "ESTABLISHED,RELATED"


def _input_rules(
    family: Family,
    mode: Mode,
    tailscale_allowed: bool,
    tailscale_interface: str,
    tailscale_port: int,
) -> List[FirewallRule]:
    icmp = "icmp" if family is Family.V4 else "ipv6-icmp"
    rules = [
        FirewallRule(Action.ACCEPT, interface="lo"),
        FirewallRule(Action.ACCEPT, ctstate=ESTABLISHED),
        FirewallRule(Action.ACCEPT, protocol=icmp),
    ]
    if tailscale_allowed:
        rules.append(FirewallRule(Action.ACCEPT, interface=tailscale_interface))
        if family is Family.V4:
            rules.append(FirewallRule(Action.ACCEPT, protocol="udp", port=tailscale_port))
    # IPv6 only ever reaches the host over Tailscale
    if mode is Mode.PUBLIC and family is Family.V4:
        rules += [FirewallRule(Action.ACCEPT, protocol="tcp", port=p) for p in PUBLIC_HOST_PORTS]
    return rules


def _docker_user_rules(mode: Mode, docker_subnet: str, tailscale_interface: str) -> List[FirewallRule]:
    rules = [
        FirewallRule(Action.RETURN, ctstate=ESTABLISHED),
        FirewallRule(Action.RETURN, interface="docker0"),
        FirewallRule(Action.RETURN, source=docker_subnet),
        FirewallRule(Action.RETURN, interface="br-+"),
        FirewallRule(Action.RETURN, interface=tailscale_interface),
    ]
    if mode is Mode.PUBLIC:
        rules += [FirewallRule(Action.RETURN, protocol="tcp", port=p) for p in PUBLIC_CONTAINER_PORTS]
    # whitelist: anything not returned above never reaches a container
    rules.append(FirewallRule(Action.DROP))
    return rules


def plan(
    mode: Mode,
    tailscale_installed: bool,
    *,
    docker_subnet: str = "172.16.0.0/12",
    tailscale_interface: str = "tailscale0",
    tailscale_port: int = 41641,
) -> FirewallRuleSet:
    """
    Target firewall state for `mode`.

    Pure and deterministic: the returned order is the application order,
    and every accept/return rule precedes the default deny of its chain.
    """
    tailscale_allowed = tailscale_installed or mode is Mode.PRIVATE

    chains = []
    for family in (Family.V4, Family.V6):
        chains.append(
            ChainPlan(
                family,
                Chain.INPUT,
                tuple(_input_rules(family, mode, tailscale_allowed, tailscale_interface, tailscale_port)),
                policy=Action.DROP,
            )
        )
        chains.append(ChainPlan(family, Chain.OUTPUT, policy=Action.ACCEPT, flush=False))

        if family is Family.V4:
            forward = (
                FirewallRule(Action.ACCEPT, source=docker_subnet),
                FirewallRule(Action.ACCEPT, destination=docker_subnet),
            )
            chains.append(ChainPlan(family, Chain.FORWARD, forward, policy=Action.DROP))
            chains.append(
                ChainPlan(
                    family,
                    Chain.DOCKER_USER,
                    tuple(_docker_user_rules(mode, docker_subnet, tailscale_interface)),
                    create=True,
                )
            )
        else:
            chains.append(ChainPlan(family, Chain.FORWARD, policy=Action.DROP))

    return FirewallRuleSet(tuple(chains))
