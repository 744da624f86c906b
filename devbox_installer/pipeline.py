from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from .errors import PlatformUnsupported, ProvisioningError
from .executor import install_tool, run_hook
from .lib.command import which
from .logging_utils import log_ok
from .plan import InstallationPlan, build_plan
from .probe import Prober
from .recipes import RecipeCtx
from .tools import ToolSpec

logger = logging.getLogger(__name__)

PACKAGE_MANAGER = "apt"


class ToolState(str, enum.Enum):
    UNKNOWN = "unknown"
    PRESENT = "present"
    ABSENT = "absent"
    INSTALLING = "installing"
    FAILED = "failed"


@dataclass
class RunResult:
    plan: InstallationPlan
    states: Dict[str, ToolState] = field(default_factory=dict)
    installed: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)

    @property
    def already_present(self) -> List[str]:
        return self.plan.present


def ensure_platform(which_fn: Callable[[str], Optional[str]] = which) -> None:
    if which_fn(PACKAGE_MANAGER) is None:
        raise PlatformUnsupported("This installer is intended for Ubuntu/Debian systems with apt.")


def report_plan(plan: InstallationPlan) -> None:
    for spec in plan.tools:
        r = plan.results[spec.name]
        if r.present:
            log_ok(logger, "%s is already installed: %s", spec.display_name, r.version or "")
        else:
            logger.info("%s is missing (%s)", spec.display_name, r.reason or "absent")


def provision(
    tools: Sequence[ToolSpec],
    *,
    ctx: RecipeCtx,
    prober: Prober,
    fetcher: Optional[ToolSpec] = None,
    update_existing: bool = False,
    which_fn: Callable[[str], Optional[str]] = which,
) -> RunResult:
    """Probe every tool, then install the missing ones in dependency order.

    Nothing is installed, and apt is not consulted, when every tool is
    already present. The first failure stops the run.
    """

    plan = build_plan(tools, prober)
    result = RunResult(plan=plan, states={t.name: ToolState.UNKNOWN for t in tools})
    for name, r in plan.results.items():
        result.states[name] = ToolState.PRESENT if r.present else ToolState.ABSENT

    report_plan(plan)

    if update_existing:
        for spec in plan.tools:
            if spec.update is None or not plan.results[spec.name].present:
                continue
            if spec.update.requires and which_fn(spec.update.requires) is None:
                logger.warning(
                    "Skipping %s update: %s not found on PATH", spec.display_name, spec.update.requires
                )
                continue
            logger.info("Checking for %s updates…", spec.display_name)
            run_hook(ctx, spec.update)
            log_ok(logger, "%s updated", spec.display_name)
            result.updated.append(spec.name)

    if plan.nothing_to_do:
        log_ok(logger, "All tools are already installed!")
        return result

    ensure_platform(which_fn)

    if fetcher is not None and plan.needs_fetcher:
        if not prober(fetcher).present:
            logger.info("%s not found; installing %s…", fetcher.display_name, fetcher.display_name)
            install_tool(fetcher, deps=(), ctx=ctx, prober=prober)

    for name in plan.install_order:
        spec = plan.spec(name)
        result.states[name] = ToolState.INSTALLING
        try:
            install_tool(
                spec,
                deps=[plan.spec(d) for d in spec.depends_on],
                ctx=ctx,
                prober=prober,
            )
        except ProvisioningError:
            result.states[name] = ToolState.FAILED
            logger.debug("Tool states at failure: %s", {k: v.value for k, v in result.states.items()})
            raise
        result.states[name] = ToolState.PRESENT
        result.installed.append(name)

    log_ok(logger, "All required tools are now installed!")
    return result
