from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .logging_utils import DEFAULT_LOG_PATH

DEFAULT_CONFIG_PATH = str(Path.home() / ".config/devbox-installer/config.yaml")
DEFAULT_PROBE_TIMEOUT = 30.0


@dataclass(frozen=True)
class InstallerConfig:
    raw: Dict[str, Any] = field(default_factory=dict)

    def _section(self, name: str) -> Dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def skip(self) -> List[str]:
        return [str(s) for s in (self._section("tools").get("skip") or [])]

    @property
    def log_path(self) -> str:
        return str(Path(str(self._section("paths").get("log") or DEFAULT_LOG_PATH)).expanduser())

    @property
    def local_bin(self) -> Optional[str]:
        v = self._section("paths").get("local_bin")
        return str(Path(str(v)).expanduser()) if v else None

    @property
    def use_sudo(self) -> Optional[bool]:
        """None means: use sudo unless running as root."""
        v = self._section("privilege").get("sudo", "auto")
        if v == "auto" or v is None:
            return None
        return bool(v)

    @property
    def update_existing(self) -> bool:
        return bool(self._section("rust").get("update_existing", False))

    @property
    def probe_timeout(self) -> float:
        return float(self._section("probe").get("timeout") or DEFAULT_PROBE_TIMEOUT)


def load_config(path: str | None = None) -> InstallerConfig:
    """Load the user config.

    An explicitly given path must exist; the default location is optional.
    """
    p = Path(path or DEFAULT_CONFIG_PATH).expanduser()
    if not p.exists():
        if path:
            raise FileNotFoundError(path)
        return InstallerConfig()

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("installer config must be YAML")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"{p} is not valid YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"{p} must contain a mapping/object")

    return InstallerConfig(raw=raw)
