from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .config import InstallerConfig, load_config
from .errors import ManifestError, ProvisioningError
from .lib.env import Paths
from .logging_utils import DEFAULT_LOG_PATH, configure_logging, log_ok
from .pipeline import RunResult, provision, report_plan
from .plan import build_plan
from .probe import make_prober
from .recipes import RecipeCtx
from .tools import ToolManifest, load_manifest

logger = logging.getLogger(__name__)


def _select_tools(manifest: ToolManifest, cfg: InstallerConfig, skip: List[str]) -> ToolManifest:
    names = [*cfg.skip, *skip]
    if not names:
        return manifest
    selected = manifest.without(names)
    kept = sorted(set(names) & set(selected.names()))
    if kept:
        logger.warning("Not skipping %s: other tools depend on them", ", ".join(kept))
    return selected


def run(
    *,
    cfg: InstallerConfig,
    manifest: ToolManifest,
    dry_run: bool = False,
    update_existing: bool = False,
) -> RunResult:
    """Provision every tool in the manifest that is not yet installed."""

    ctx = RecipeCtx(
        paths=Paths(),
        use_sudo=cfg.use_sudo,
        local_bin_override=cfg.local_bin,
        dry_run=dry_run,
    )
    return provision(
        manifest.tools,
        ctx=ctx,
        prober=make_prober(cfg.probe_timeout),
        fetcher=manifest.fetcher,
        update_existing=update_existing or cfg.update_existing,
    )


def check(*, cfg: InstallerConfig, manifest: ToolManifest) -> bool:
    """Probe and report only. Returns True when everything is installed."""
    plan = build_plan(manifest.tools, make_prober(cfg.probe_timeout))
    report_plan(plan)
    if plan.nothing_to_do:
        log_ok(logger, "All tools are already installed!")
        return True
    logger.warning("Missing: %s", ", ".join(plan.install_order))
    return False


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="devbox-installer",
        description="Install missing developer tools (gh, chezmoi, lazygit, cargo, ...) on Debian/Ubuntu.",
    )
    p.add_argument("--config", default=None, help="Path to config YAML")
    p.add_argument("--manifest", default=None, help="Alternative tool manifest YAML")
    p.add_argument("--log", default=None, help="Path to the log file")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--check", action="store_true", help="Only report which tools are missing")
    p.add_argument("--skip", action="append", default=[], metavar="NAME", help="Do not install this tool")
    p.add_argument("--update", action="store_true", help="Also update tools that are already installed")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(args.config)
    except (OSError, ValueError) as e:
        configure_logging(log_path=args.log or DEFAULT_LOG_PATH)
        logger.error("Could not load config: %s", e)
        return 1

    configure_logging(
        log_path=args.log or cfg.log_path,
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    try:
        manifest = _select_tools(load_manifest(args.manifest), cfg, args.skip)
        if args.check:
            return 0 if check(cfg=cfg, manifest=manifest) else 1
        run(cfg=cfg, manifest=manifest, dry_run=bool(args.dry_run), update_existing=bool(args.update))
    except (ProvisioningError, ManifestError, OSError) as e:
        logger.debug("Provisioning aborted", exc_info=True)
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
