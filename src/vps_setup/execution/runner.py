# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/execution/runner.py

from __future__ import annotations

import dataclasses
import logging
import os
import subprocess
import time
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Union

from vps_setup.errors import ReconciliationError

Cmd = Sequence[Union[str, "os.PathLike[str]"]]

log = logging.getLogger("vps_setup")


@dataclass
class CommandRunner:
    """
    Runs host commands for one configuration domain.

    Mutating commands go through run() and are skipped in dry-run mode.
    Read-only inspection goes through query(), which always executes.
    A failing command raises ReconciliationError tagged with `label`.
    """

    logger: logging.Logger = log
    dry_run: bool = False
    label: Optional[str] = None
    timeout: int = 1800

    def for_domain(self, label: str) -> "CommandRunner":
        return dataclasses.replace(self, label=label)

    def run(
        self,
        cmd: Cmd,
        *,
        check: bool = True,
        input: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        label = self.label or "cmd"
        cmd_str = " ".join(map(str, cmd))

        self.logger.debug(f"[{label}] $ {cmd_str}")

        if self.dry_run:
            self.logger.info(f"[{label}] dry-run: {cmd_str}")
            return subprocess.CompletedProcess(args=list(cmd), returncode=0, stdout="", stderr="")

        return self._execute(cmd, check=check, input=input, env=env)

    def query(self, cmd: Cmd, *, input: Optional[str] = None) -> subprocess.CompletedProcess:
        label = self.label or "cmd"
        self.logger.debug(f"[{label}] ? {' '.join(map(str, cmd))}")
        return self._execute(cmd, check=False, input=input, env=None)

    def succeeds(self, cmd: Cmd) -> bool:
        return self.query(cmd).returncode == 0

    def _execute(self, cmd, *, check, input, env) -> subprocess.CompletedProcess:
        label = self.label or "cmd"
        cmd_str = " ".join(map(str, cmd))
        full_env = {**os.environ, **env} if env else None

        start = time.time()
        try:
            result = subprocess.run(
                [str(c) for c in cmd],
                capture_output=True,
                text=True,
                input=input,
                env=full_env,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            if not check:
                return subprocess.CompletedProcess(args=list(cmd), returncode=127, stdout="", stderr=str(e))
            raise ReconciliationError(label, f"command not found: {cmd[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise ReconciliationError(label, f"`{cmd_str}` timed out after {self.timeout}s") from e

        duration = time.time() - start

        if result.stdout:
            self.logger.debug(f"[{label}][stdout]\n{result.stdout.rstrip()}")
        if result.stderr:
            self.logger.debug(f"[{label}][stderr]\n{result.stderr.rstrip()}")
        self.logger.debug(f"[{label}][exit {result.returncode}] ({duration:.2f}s)")

        if check and result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip().splitlines()
            tail = detail[-1] if detail else "no output"
            raise ReconciliationError(
                label, f"`{cmd_str}` failed (rc={result.returncode}): {tail}"
            )

        return result
