from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional

from .config import DEFAULT_PROBE_TIMEOUT
from .lib.command import run_cmd, which
from .tools import ToolSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    present: bool
    version: Optional[str] = None
    path: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def absent(cls, reason: str, *, path: Optional[str] = None) -> "ProbeResult":
        return cls(present=False, path=path, reason=reason)


Prober = Callable[[ToolSpec], ProbeResult]


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def probe_tool(spec: ToolSpec, *, timeout: float = DEFAULT_PROBE_TIMEOUT) -> ProbeResult:
    """Check whether a tool is installed by invoking its version command.

    Absence is an expected outcome and is reported, never raised.
    """
    path = which(spec.command)
    if path is None:
        return ProbeResult.absent("command not found")

    try:
        r = run_cmd([path, *spec.version_args], check=False, timeout=timeout, quiet=True)
    except subprocess.TimeoutExpired:
        logger.warning("%s --version timed out after %ss", spec.command, timeout)
        return ProbeResult.absent("version check timed out", path=path)
    except OSError as e:
        return ProbeResult.absent(f"could not run {spec.command}: {e}", path=path)

    if r.returncode != 0:
        logger.warning("%s is on PATH but its version check exited %s", spec.command, r.returncode)
        return ProbeResult.absent(f"version check exited {r.returncode}", path=path)

    version = _first_line(r.stdout) or _first_line(r.stderr) or None
    return ProbeResult(present=True, version=version, path=path)


def make_prober(timeout: float = DEFAULT_PROBE_TIMEOUT) -> Prober:
    def _probe(spec: ToolSpec) -> ProbeResult:
        return probe_tool(spec, timeout=timeout)

    return _probe
