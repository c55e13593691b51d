# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/execution/files.py

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from vps_setup.errors import ReconciliationError

log = logging.getLogger("vps_setup")


@dataclass
class HostFiles:
    """
    File writes against the host filesystem, honouring dry-run.

    Content is written to a temp file in the target directory and renamed
    into place, so a reader never sees a half-written config.
    """

    dry_run: bool = False
    label: str = "files"

    def read_text(self, path: Path) -> Optional[str]:
        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write_text(
        self,
        path: Path,
        content: str,
        *,
        mode: int = 0o644,
    ) -> bool:
        """
        Write `content` to `path` unless it already holds exactly that.
        Returns True when the file changed (or would change in dry-run).
        """
        path = Path(path)
        if self.read_text(path) == content:
            self._ensure_mode(path, mode)
            log.debug(f"[{self.label}] {path} unchanged")
            return False

        if self.dry_run:
            log.info(f"[{self.label}] dry-run: would write {path}")
            return True

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(tmp, mode)
            os.replace(tmp, path)
        except OSError as e:
            raise ReconciliationError(self.label, f"cannot write {path}: {e}") from e

        log.debug(f"[{self.label}] wrote {path} (mode {oct(mode)[2:]})")
        return True

    def append_line(self, path: Path, line: str, *, mode: int = 0o644) -> bool:
        """Append `line` to `path` if no identical line is already present."""
        current = self.read_text(path) or ""
        if line in current.splitlines():
            return False
        if current and not current.endswith("\n"):
            current += "\n"
        return self.write_text(path, current + line + "\n", mode=mode)

    def copy_once(self, src: Path, dst: Path) -> bool:
        """Byte-for-byte copy of `src` to `dst`; never overwrites an existing `dst`."""
        src, dst = Path(src), Path(dst)
        if dst.exists():
            log.debug(f"[{self.label}] {dst} already exists, keeping it")
            return False
        if self.dry_run:
            log.info(f"[{self.label}] dry-run: would copy {src} -> {dst}")
            return True
        try:
            shutil.copy2(src, dst)
        except OSError as e:
            raise ReconciliationError(self.label, f"cannot copy {src} to {dst}: {e}") from e
        return True

    def ensure_dir(self, path: Path, *, mode: int = 0o755) -> None:
        path = Path(path)
        if self.dry_run:
            if not path.is_dir():
                log.info(f"[{self.label}] dry-run: would create {path}")
            return
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ReconciliationError(self.label, f"cannot create {path}: {e}") from e
        self._ensure_mode(path, mode)

    def _ensure_mode(self, path: Path, mode: int) -> None:
        if self.dry_run or not path.exists():
            return
        try:
            if (path.stat().st_mode & 0o7777) != mode:
                os.chmod(path, mode)
        except OSError as e:
            raise ReconciliationError(self.label, f"cannot set permissions on {path}: {e}") from e
