# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/vps_setup/logging/log.py

from __future__ import annotations

import logging
from pathlib import Path
from datetime import datetime, timezone
import uuid


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "vps_setup",
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path | None]:
    """
    Initializes:
      - full DEBUG trace in a per-run log file
      - INFO console output (DEBUG when --verbose is passed)
      - returns run_id so observers can reuse it

    If the log directory cannot be created (e.g. `status` run as a normal
    user) only the console handler is attached and the log path is None.
    """
    run_id = str(uuid.uuid4())

    if base_dir is None:
        base_dir = Path("/var/log/vps-setup")

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_path: Path | None = None
    try:
        base_dir.mkdir(parents=True, exist_ok=True)
        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        log_path = base_dir / f"setup-{ts}-{run_id[:8]}.log"
        fh = logging.FileHandler(log_path)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)
    except OSError:
        log_path = None

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    logger.debug("=== vps-setup run started ===")
    logger.debug(f"run_id={run_id}")
    logger.debug(f"log_file={log_path}")

    return logger, run_id, log_path
