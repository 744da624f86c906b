"""Tool specifications and the packaged tool manifest."""

from __future__ import annotations

from dataclasses import dataclass, field
from importlib import resources
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import yaml

from .errors import ManifestError

MANIFEST_RESOURCE = "tools.yaml"


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class RecipeCall:
    recipe: str
    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    # Executable that must be on PATH for the hook to run at all.
    requires: Optional[str] = None


@dataclass(frozen=True)
class ToolSpec:
    name: str
    command: str
    recipe: str
    label: str = ""
    params: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    version_args: Tuple[str, ...] = ("--version",)
    depends_on: Tuple[str, ...] = ()
    needs_fetcher: bool = False
    post_install: Optional[RecipeCall] = None
    update: Optional[RecipeCall] = None

    @property
    def display_name(self) -> str:
        return self.label or self.name


@dataclass(frozen=True)
class ToolManifest:
    tools: Tuple[ToolSpec, ...]
    fetcher: Optional[ToolSpec] = None

    def names(self) -> List[str]:
        return [t.name for t in self.tools]

    def get(self, name: str) -> ToolSpec:
        for t in self.tools:
            if t.name == name:
                return t
        raise KeyError(name)

    def without(self, names: Iterable[str]) -> "ToolManifest":
        """Drop tools by name.

        A skipped tool that another tool depends on stays in the manifest.
        """
        drop = set(names)
        unknown = drop - set(self.names())
        if unknown:
            raise ManifestError(f"Unknown tool(s): {', '.join(sorted(unknown))}")
        required: set[str] = set()
        frontier = [t for t in self.tools if t.name not in drop]
        while frontier:
            deps = {d for t in frontier for d in t.depends_on} - required
            required |= deps
            frontier = [t for t in self.tools if t.name in deps]
        kept = tuple(t for t in self.tools if t.name not in drop or t.name in required)
        return ToolManifest(tools=kept, fetcher=self.fetcher)


def _hook(raw: Any, *, where: str) -> Optional[RecipeCall]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ManifestError(f"{where} must be a mapping")
    body = dict(raw)
    recipe = str(body.pop("recipe", "command"))
    requires = body.pop("requires", None)
    params = body.pop("params", None)
    return RecipeCall(
        recipe=recipe,
        params=_freeze(params if params is not None else body),
        requires=str(requires) if requires else None,
    )


def tool_from_dict(raw: Dict[str, Any]) -> ToolSpec:
    if not isinstance(raw, dict):
        raise ManifestError(f"Tool entry must be a mapping, got {type(raw).__name__}")
    name = raw.get("name")
    if not name:
        raise ManifestError("Tool entry is missing 'name'")
    for key in ("command", "recipe"):
        if not raw.get(key):
            raise ManifestError(f"Tool {name}: missing '{key}'")

    depends_on = raw.get("depends_on") or []
    if not isinstance(depends_on, list):
        raise ManifestError(f"Tool {name}: depends_on must be a list")

    version_args = raw.get("version_args") or ["--version"]

    return ToolSpec(
        name=str(name),
        label=str(raw.get("label") or name),
        command=str(raw["command"]),
        recipe=str(raw["recipe"]),
        params=_freeze(raw.get("params") or {}),
        version_args=tuple(str(a) for a in version_args),
        depends_on=tuple(str(d) for d in depends_on),
        needs_fetcher=bool(raw.get("needs_fetcher", False)),
        post_install=_hook(raw.get("post_install"), where=f"Tool {name}: post_install"),
        update=_hook(raw.get("update"), where=f"Tool {name}: update"),
    )


def validate_tools(tools: Sequence[ToolSpec]) -> None:
    """Reject duplicate names and dependencies on tools not in the list.

    Cycles are detected when the install order is computed.
    """
    seen: set[str] = set()
    for t in tools:
        if t.name in seen:
            raise ManifestError(f"Duplicate tool name: {t.name}")
        seen.add(t.name)
    for t in tools:
        for dep in t.depends_on:
            if dep not in seen:
                raise ManifestError(f"Tool {t.name} depends on unknown tool {dep}")
            if dep == t.name:
                raise ManifestError(f"Tool {t.name} depends on itself")


def manifest_from_dict(raw: Dict[str, Any]) -> ToolManifest:
    if not isinstance(raw, dict):
        raise ManifestError("Tool manifest must contain a mapping/object")

    entries = raw.get("tools") or []
    if not isinstance(entries, list):
        raise ManifestError("tools must be a list")
    tools = tuple(tool_from_dict(e) for e in entries)
    validate_tools(tools)

    fetcher = None
    prereqs = raw.get("prerequisites") or []
    if not isinstance(prereqs, list) or len(prereqs) > 1:
        raise ManifestError("prerequisites must be a list with a single fetch tool")
    if prereqs:
        fetcher = tool_from_dict(prereqs[0])

    return ToolManifest(tools=tools, fetcher=fetcher)


def load_manifest(path: str | None = None) -> ToolManifest:
    """Load a tool manifest; the packaged one by default."""
    if path:
        with open(path, encoding="utf-8") as fh:
            text = fh.read()
    else:
        text = resources.files("devbox_installer.manifests").joinpath(MANIFEST_RESOURCE).read_text(
            encoding="utf-8"
        )
    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ManifestError(f"{path or MANIFEST_RESOURCE} is not valid YAML: {e}") from e
    return manifest_from_dict(raw)
