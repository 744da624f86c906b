from __future__ import annotations

import shlex
from typing import Sequence


class ProvisioningError(RuntimeError):
    """Base class for failures that abort the whole provisioning run."""


class PlatformUnsupported(ProvisioningError):
    """No compatible base package manager on this host."""


class InstallVerificationFailed(ProvisioningError):
    def __init__(self, tool: str, message: str | None = None) -> None:
        self.tool = tool
        super().__init__(message or f"{tool} installation appears to have failed.")


class CommandFailed(ProvisioningError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {shlex.join(self.argv)}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


class ManifestError(ValueError):
    """The tool manifest or its dependency graph is malformed."""
