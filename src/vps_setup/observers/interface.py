# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/observers/interface.py

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .events import BaseEvent


@runtime_checkable
class Observer(Protocol):
    """
    Receives every lifecycle event of a setup run, in emission order.
    Errors raised here are logged by the EventBus and never abort the run.
    """

    def notify(self, event: BaseEvent) -> None: ...
