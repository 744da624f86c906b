from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Paths:
    home: Path = field(default_factory=Path.home)
    system_bin: str = "/usr/local/bin"
    keyrings_dir: str = "/etc/apt/keyrings"
    sources_dir: str = "/etc/apt/sources.list.d"

    @property
    def local_bin(self) -> Path:
        return self.home / ".local/bin"

    @property
    def cargo_bin(self) -> Path:
        return self.home / ".cargo/bin"


def prepend_path(directory: str | Path) -> bool:
    """Put a directory at the front of this process' PATH.

    Later probes and child processes see tools installed there. Returns
    False when the directory was already on PATH.
    """
    d = str(directory)
    current = os.environ.get("PATH", "")
    if d in current.split(os.pathsep):
        return False
    os.environ["PATH"] = d + (os.pathsep + current if current else "")
    logger.debug("Added %s to PATH", d)
    return True


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return bool(geteuid and geteuid() == 0)
