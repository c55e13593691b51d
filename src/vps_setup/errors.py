# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/errors.py

from __future__ import annotations


class SetupError(RuntimeError):
    """Base class for every failure that aborts a setup run."""

    exit_code = 1


# ---------------------------------------------------------------------
# Preconditions (always raised before any host mutation)
# ---------------------------------------------------------------------
class PreconditionError(SetupError):
    exit_code = 1


class PrivilegeError(PreconditionError):
    """Raised when the process is not running as root."""


class UnsupportedPlatformError(PreconditionError):
    pass


class ModeRequiredError(PreconditionError):
    """No mode has been committed yet and none was requested."""


class TailscaleMissingError(PreconditionError):
    pass


class TailscaleDisconnectedError(PreconditionError):
    pass


class UsernameRequiredError(PreconditionError):
    pass


class InvalidUsernameError(PreconditionError):
    pass


class NoAuthorizedKeysError(PreconditionError):
    """Root has no authorized SSH keys; disabling password auth would lock the operator out."""


class CorruptStateError(PreconditionError):
    """A persisted state record exists but cannot be understood."""


# ---------------------------------------------------------------------
# Mode conflicts
# ---------------------------------------------------------------------
class ModeConflictError(SetupError):
    exit_code = 3

    def __init__(self, stored, requested, record_path=None):
        self.stored = stored
        self.requested = requested
        self.record_path = record_path
        where = f" ({record_path})" if record_path else ""
        super().__init__(
            f"Server was set up in {stored.label} mode but {requested.label} mode was requested. "
            f"Switching modes is not supported. To start over, delete the mode record{where} "
            f"and re-run."
        )


# ---------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------
class ReconciliationError(SetupError):
    exit_code = 4

    def __init__(self, domain: str, message: str):
        self.domain = domain
        super().__init__(f"[{domain}] {message}")
