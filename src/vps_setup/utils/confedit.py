# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/utils/confedit.py

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

_KEY_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_.\-]*$")
# sshd_config accepts `Key value`, `Key=value` and `Key = value`
_SSHD_SPLIT_RE = re.compile(r"[\s=]+")


@dataclass
class DirectiveLine:
    raw: str
    key: Optional[str] = None      # lower-cased directive name, if the line holds one
    value: Optional[str] = None
    commented: bool = False


class DirectiveFile:
    """
    Line-preserving model of a `Key value` (sshd_config) or `key = value`
    (sysctl.conf) file.

    Only the global section is edited: for sshd_config that is everything
    before the first active `Match` block, since directives inside a Match
    block only apply to matching connections.
    """

    def __init__(self, lines: List[DirectiveLine], separator: Optional[str] = None):
        self.lines = lines
        self.separator = separator

    @classmethod
    def parse(cls, text: str, separator: Optional[str] = None) -> "DirectiveFile":
        return cls([cls._parse_line(raw, separator) for raw in text.splitlines()], separator)

    @staticmethod
    def _parse_line(raw: str, separator: Optional[str]) -> DirectiveLine:
        body = raw.strip()
        commented = body.startswith("#")
        if commented:
            body = body.lstrip("#").strip()
        if not body:
            return DirectiveLine(raw)

        if separator:
            if separator not in body:
                return DirectiveLine(raw)
            key, _, value = body.partition(separator)
        else:
            parts = _SSHD_SPLIT_RE.split(body, maxsplit=1)
            if len(parts) != 2:
                return DirectiveLine(raw)
            key, value = parts
        key = key.strip()
        if not _KEY_RE.match(key):
            return DirectiveLine(raw)
        return DirectiveLine(raw, key=key.lower(), value=value.strip(), commented=commented)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def _global_end(self) -> int:
        for i, ln in enumerate(self.lines):
            if ln.key == "match" and not ln.commented:
                return i
        return len(self.lines)

    def get(self, key: str) -> Optional[str]:
        """Effective value of `key` in the global section (first active occurrence)."""
        k = key.lower()
        for ln in self.lines[: self._global_end()]:
            if ln.key == k and not ln.commented:
                return ln.value
        return None

    def in_match_blocks(self, key: str) -> List[Tuple[str, str]]:
        """Active values of `key` inside Match blocks, as (match line, value) pairs."""
        k = key.lower()
        found = []
        block = ""
        for ln in self.lines[self._global_end():]:
            if ln.commented:
                continue
            if ln.key == "match":
                block = ln.raw.strip()
            elif ln.key == k:
                found.append((block, ln.value))
        return found

    # ------------------------------------------------------------------
    # edits
    # ------------------------------------------------------------------

    def _format(self, key: str, value: str) -> str:
        if self.separator:
            return f"{key}{self.separator}{value}"
        return f"{key} {value}"

    def set(self, key: str, value: str) -> None:
        """
        Make `key` resolve to `value`:
          - first active occurrence is rewritten, later active duplicates dropped
          - otherwise the first commented-out occurrence is activated
          - otherwise the directive is inserted at the end of the global section
        """
        k = key.lower()
        end = self._global_end()
        new = DirectiveLine(self._format(key, value), key=k, value=value)

        active = [i for i in range(end) if self.lines[i].key == k and not self.lines[i].commented]
        if active:
            self.lines[active[0]] = new
            for i in reversed(active[1:]):
                del self.lines[i]
            return

        for i in range(end):
            if self.lines[i].key == k and self.lines[i].commented:
                self.lines[i] = new
                return

        self.lines.insert(end, new)

    def serialize(self) -> str:
        return "\n".join(ln.raw for ln in self.lines) + "\n"
