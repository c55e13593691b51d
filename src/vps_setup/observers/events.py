# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import socket
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single setup invocation
    host: str         # hostname of the machine being configured

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(run_id: Optional[str] = None, host: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "host": host or socket.gethostname(),
    }


# ---------------------------------------------------------------------
# Preflight
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PreflightPassed(BaseEvent):
    mode: str
    username: str
    create_user: bool
    tailscale_allowed: bool

@dataclass(frozen=True)
class PreflightFailed(BaseEvent):
    error: str


# ---------------------------------------------------------------------
# Reconciler steps
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StepStarted(BaseEvent):
    step: str
    index: int
    total: int

@dataclass(frozen=True)
class StepSucceeded(BaseEvent):
    step: str
    duration_ms: int

@dataclass(frozen=True)
class StepFailed(BaseEvent):
    step: str
    error: str


# ---------------------------------------------------------------------
# Run outcome
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StatePersisted(BaseEvent):
    mode: str
    version: str

@dataclass(frozen=True)
class RunSummary(BaseEvent):
    status: str          # "COMPLETED" | "ABORTED" | "DECLINED"
    mode: Optional[str] = None
    endpoint: Optional[str] = None
    error: Optional[str] = None
