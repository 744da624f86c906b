from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence, Tuple

from .errors import ManifestError
from .probe import Prober, ProbeResult
from .tools import ToolSpec, validate_tools

logger = logging.getLogger(__name__)


def topological_order(tools: Sequence[ToolSpec]) -> List[str]:
    """Order tool names so every dependency precedes its dependents.

    Ties keep the order of `tools`. Raises ManifestError on a cycle.
    """
    names = [t.name for t in tools]
    deps: Dict[str, set[str]] = {t.name: set(t.depends_on) & set(names) for t in tools}

    ordered: List[str] = []
    done: set[str] = set()
    while len(ordered) < len(names):
        ready = [n for n in names if n not in done and deps[n] <= done]
        if not ready:
            stuck = sorted(n for n in names if n not in done)
            raise ManifestError(f"Dependency cycle between: {', '.join(stuck)}")
        # Take one at a time so a newly-unblocked earlier tool wins ties.
        n = ready[0]
        ordered.append(n)
        done.add(n)
    return ordered


@dataclass(frozen=True)
class InstallationPlan:
    """Probe results for one run, computed once and never mutated."""

    tools: Tuple[ToolSpec, ...]
    results: Mapping[str, ProbeResult]

    @property
    def present(self) -> List[str]:
        return [t.name for t in self.tools if self.results[t.name].present]

    @property
    def needed(self) -> List[str]:
        return [t.name for t in self.tools if not self.results[t.name].present]

    @property
    def nothing_to_do(self) -> bool:
        return not self.needed

    @property
    def needs_fetcher(self) -> bool:
        return any(t.needs_fetcher for t in self.tools if t.name in self.needed)

    @property
    def install_order(self) -> List[str]:
        needed = set(self.needed)
        return [n for n in topological_order(self.tools) if n in needed]

    def spec(self, name: str) -> ToolSpec:
        for t in self.tools:
            if t.name == name:
                return t
        raise KeyError(name)


def build_plan(tools: Sequence[ToolSpec], prober: Prober) -> InstallationPlan:
    validate_tools(tools)
    # A cycle must fail before anything is probed or installed.
    topological_order(tools)

    results: Dict[str, ProbeResult] = {}
    for spec in tools:
        results[spec.name] = prober(spec)
        logger.debug("probe %s -> %s", spec.name, results[spec.name])
    return InstallationPlan(tools=tuple(tools), results=MappingProxyType(results))
