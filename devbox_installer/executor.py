from __future__ import annotations

import logging
from typing import Sequence

from .errors import InstallVerificationFailed
from .lib.env import prepend_path
from .logging_utils import log_ok
from .probe import Prober, ProbeResult
from .recipes import RecipeCtx, get_recipe
from .tools import RecipeCall, ToolSpec

logger = logging.getLogger(__name__)


def refresh_user_paths(ctx: RecipeCtx) -> None:
    """Pick up per-user bin dirs created earlier in this run (or a past one)."""
    for d in (ctx.paths.cargo_bin, ctx.local_bin):
        if d.is_dir():
            prepend_path(d)


def run_hook(ctx: RecipeCtx, hook: RecipeCall) -> None:
    get_recipe(hook.recipe)(ctx, hook.params)


def install_tool(
    spec: ToolSpec,
    *,
    deps: Sequence[ToolSpec],
    ctx: RecipeCtx,
    prober: Prober,
) -> ProbeResult:
    """Install one absent tool and confirm it.

    Every dependency must probe present first. Raises
    InstallVerificationFailed when a dependency is missing or when the tool
    is still absent after its recipe ran. Command failures inside the
    recipe propagate unchanged.
    """
    recipe_fn = get_recipe(spec.recipe)
    logger.info("Installing %s…", spec.display_name)

    if not ctx.dry_run:
        refresh_user_paths(ctx)
        for dep in deps:
            if not prober(dep).present:
                raise InstallVerificationFailed(
                    spec.name,
                    f"{dep.display_name} is required to install {spec.display_name} but is not available.",
                )

    recipe_fn(ctx, spec.params)

    if ctx.dry_run:
        logger.info("Dry run: not verifying %s", spec.display_name)
        result = ProbeResult(present=True, reason="dry run")
    else:
        refresh_user_paths(ctx)
        result = prober(spec)
        if not result.present:
            raise InstallVerificationFailed(spec.name, f"{spec.display_name} installation appears to have failed.")
        log_ok(logger, "%s installed successfully: %s", spec.display_name, result.version or "")

    if spec.post_install is not None:
        run_hook(ctx, spec.post_install)

    return result
