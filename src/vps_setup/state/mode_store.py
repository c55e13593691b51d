# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/state/mode_store.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from vps_setup.errors import CorruptStateError, ModeConflictError, ModeRequiredError
from vps_setup.execution.files import HostFiles

log = logging.getLogger("vps_setup")


class Mode(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class PersistedState:
    mode: Optional[Mode] = None
    version: Optional[str] = None


def resolve_mode(persisted: Optional[Mode], requested: Optional[Mode]) -> Mode:
    """
    Decide the effective mode for this run.

    - nothing stored, nothing requested -> ModeRequiredError
    - stored, nothing requested         -> reuse stored (with a notice)
    - stored != requested               -> ModeConflictError, nothing touched
    """
    if persisted is None:
        if requested is None:
            raise ModeRequiredError(
                "No mode has been set up on this server yet. "
                "Choose one with --public or --private."
            )
        return requested

    if requested is None:
        log.info(f"Using previously configured mode: {persisted.label}")
        return persisted

    if requested is not persisted:
        raise ModeConflictError(persisted, requested)

    return persisted


class ModeStore:
    """
    The mode record is written once and never changed by this tool; the
    version record is overwritten after every successful run.
    """

    def __init__(self, mode_file: Path, version_file: Path, files: Optional[HostFiles] = None):
        self.mode_file = Path(mode_file)
        self.version_file = Path(version_file)
        self.files = files or HostFiles(label="state")

    def load(self) -> Optional[Mode]:
        try:
            token = self.mode_file.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CorruptStateError(f"Cannot read mode record {self.mode_file}: {e}") from e

        if not token:
            return None
        try:
            return Mode(token.lower())
        except ValueError:
            raise CorruptStateError(
                f"Mode record {self.mode_file} contains unknown mode '{token}'. "
                f"Expected one of: {', '.join(m.value for m in Mode)}."
            ) from None

    def load_version(self) -> Optional[str]:
        try:
            return self.version_file.read_text(encoding="utf-8").strip() or None
        except OSError:
            return None

    def load_state(self) -> PersistedState:
        return PersistedState(mode=self.load(), version=self.load_version())

    def request_mode(self, requested: Optional[Mode]) -> Mode:
        try:
            return resolve_mode(self.load(), requested)
        except ModeConflictError as e:
            raise ModeConflictError(e.stored, e.requested, self.mode_file) from None

    def commit(self, mode: Mode) -> None:
        stored = self.load()
        if stored is mode:
            return
        if stored is not None:
            raise ModeConflictError(stored, mode, self.mode_file)
        self.files.write_text(self.mode_file, mode.value + "\n")
        log.debug(f"mode record written: {mode.value}")

    def record_version(self, version: str) -> None:
        self.files.write_text(self.version_file, version + "\n")
