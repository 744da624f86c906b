"""Test doubles shared by the test modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Set

from devbox_installer.probe import ProbeResult
from devbox_installer.recipes import RecipeCtx
from devbox_installer.tools import RecipeCall, ToolSpec


@dataclass
class FakeHost:
    """A pretend machine: which tools are installed, and what ran."""

    installed: Set[str] = field(default_factory=set)
    broken: Set[str] = field(default_factory=set)
    actions: List[str] = field(default_factory=list)
    probes: List[str] = field(default_factory=list)

    def prober(self, spec: ToolSpec) -> ProbeResult:
        self.probes.append(spec.name)
        if spec.name in self.installed:
            return ProbeResult(present=True, version=f"{spec.name} 1.0", path=f"/usr/bin/{spec.command}")
        return ProbeResult.absent("command not found")

    def recipe(self, ctx: RecipeCtx, params: Mapping[str, Any]) -> None:
        name = str(params["tool"])
        self.actions.append(f"{params.get('action', 'install')}:{name}")
        if name not in self.broken:
            self.installed.add(name)


def fake_tool(name: str, *, depends_on=(), needs_fetcher: bool = False, **kw: Any) -> ToolSpec:
    return ToolSpec(
        name=name,
        command=name,
        recipe="fake",
        params={"tool": name},
        depends_on=tuple(depends_on),
        needs_fetcher=needs_fetcher,
        **kw,
    )


def fake_hook(name: str, action: str, requires: str | None = None) -> RecipeCall:
    return RecipeCall(recipe="fake", params={"tool": name, "action": action}, requires=requires)
