# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/firewall/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Family(str, Enum):
    V4 = "ipv4"
    V6 = "ipv6"

    @property
    def binary(self) -> str:
        return "iptables" if self is Family.V4 else "ip6tables"


class Chain(str, Enum):
    INPUT = "INPUT"
    OUTPUT = "OUTPUT"
    FORWARD = "FORWARD"
    DOCKER_USER = "DOCKER-USER"


class Action(str, Enum):
    ACCEPT = "ACCEPT"
    RETURN = "RETURN"
    DROP = "DROP"


@dataclass(frozen=True)
class FirewallRule:
    """One rule. Unset predicates match anything."""
    action: Action
    interface: Optional[str] = None
    protocol: Optional[str] = None
    port: Optional[int] = None
    source: Optional[str] = None
    destination: Optional[str] = None
    ctstate: Optional[str] = None

    def to_iptables_args(self) -> List[str]:
        args: List[str] = []
        if self.interface:
            args += ["-i", self.interface]
        if self.source:
            args += ["-s", self.source]
        if self.destination:
            args += ["-d", self.destination]
        if self.protocol:
            args += ["-p", self.protocol]
        if self.port is not None:
            args += ["--dport", str(self.port)]
        if self.ctstate:
            args += ["-m", "conntrack", "--ctstate", self.ctstate]
        args += ["-j", self.action.value]
        return args

    def __str__(self) -> str:
        return " ".join(self.to_iptables_args())


@dataclass(frozen=True)
class ChainPlan:
    """
    Target state of one chain in one address family.

    flush:  the chain is emptied before `rules` are appended (full replace)
    create: user-defined chain that may not exist yet
    policy: built-in chain default policy, None for user-defined chains
    """
    family: Family
    chain: Chain
    rules: Tuple[FirewallRule, ...] = ()
    policy: Optional[Action] = None
    flush: bool = True
    create: bool = False


@dataclass(frozen=True)
class FirewallRuleSet:
    chains: Tuple[ChainPlan, ...] = field(default_factory=tuple)

    def chain(self, family: Family, chain: Chain) -> Optional[ChainPlan]:
        for cp in self.chains:
            if cp.family is family and cp.chain is chain:
                return cp
        return None

    def rules_for(self, family: Family, chain: Chain) -> Tuple[FirewallRule, ...]:
        cp = self.chain(family, chain)
        return cp.rules if cp else ()

    def policy_for(self, family: Family, chain: Chain) -> Optional[Action]:
        cp = self.chain(family, chain)
        return cp.policy if cp else None

    def accepted_tcp_ports(self, family: Family, chain: Chain = Chain.INPUT) -> List[int]:
        return [
            r.port for r in self.rules_for(family, chain)
            if r.protocol == "tcp" and r.port is not None and r.action is not Action.DROP
        ]

    def commands(self) -> List[List[str]]:
        """The rule set as an ordered list of iptables/ip6tables argv."""
        out: List[List[str]] = []
        for cp in self.chains:
            binary = cp.family.binary
            if cp.create:
                out.append([binary, "-N", cp.chain.value])
            if cp.flush:
                out.append([binary, "-F", cp.chain.value])
            for rule in cp.rules:
                out.append([binary, "-A", cp.chain.value, *rule.to_iptables_args()])
            if cp.policy is not None:
                out.append([binary, "-P", cp.chain.value, cp.policy.value])
        return out
