"""Installation recipes.

A recipe is the fixed sequence of OS-level actions that installs one tool.
Recipes are registered by name and receive the tool's manifest `params`.
They raise CommandFailed (via run_cmd) on the first failing command; they
never verify the result themselves, the executor re-probes afterwards.
"""

from __future__ import annotations

import logging
import platform
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from .errors import ManifestError
from .lib.apt import (
    add_apt_source,
    apt_install,
    apt_update,
    dearmor_key,
    dpkg_architecture,
    install_file,
    make_dir,
)
from .lib.command import run_cmd, which
from .lib.env import Paths, is_root, prepend_path
from .lib.fetch import fetch_text, fetch_to_file, latest_release_version

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecipeCtx:
    paths: Paths = field(default_factory=Paths)
    use_sudo: Optional[bool] = None
    local_bin_override: Optional[str] = None
    dry_run: bool = False

    @property
    def sudo(self) -> Tuple[str, ...]:
        use = (not is_root()) if self.use_sudo is None else self.use_sudo
        return ("sudo",) if use else ()

    @property
    def local_bin(self) -> Path:
        return Path(self.local_bin_override) if self.local_bin_override else self.paths.local_bin

    def template_values(self) -> Dict[str, str]:
        return {
            "home": str(self.paths.home),
            "local_bin": str(self.local_bin),
            "cargo_bin": str(self.paths.cargo_bin),
        }

    def fmt(self, value: str, **extra: str) -> str:
        return value.format(**{**self.template_values(), **extra})

    def run(self, argv: Sequence[str], *, privileged: bool = False, **kw: Any):
        prefix = self.sudo if privileged else ()
        return run_cmd([*prefix, *argv], dry_run=self.dry_run, **kw)


Recipe = Callable[[RecipeCtx, Mapping[str, Any]], None]

RECIPES: Dict[str, Recipe] = {}


def recipe(name: str) -> Callable[[Recipe], Recipe]:
    def _register(fn: Recipe) -> Recipe:
        RECIPES[name] = fn
        return fn

    return _register


def get_recipe(name: str) -> Recipe:
    try:
        return RECIPES[name]
    except KeyError:
        raise ManifestError(f"Unknown recipe: {name}") from None


def _require(params: Mapping[str, Any], key: str, recipe_name: str) -> Any:
    if key not in params:
        raise ManifestError(f"recipe {recipe_name}: missing parameter '{key}'")
    return params[key]


@recipe("apt")
def install_apt_packages(ctx: RecipeCtx, params: Mapping[str, Any]) -> None:
    packages = list(_require(params, "packages", "apt"))
    apt_update(sudo=ctx.sudo, dry_run=ctx.dry_run)
    apt_install(packages, sudo=ctx.sudo, dry_run=ctx.dry_run)

    link = params.get("symlink")
    if link:
        source = which(str(link["source"]))
        if source:
            ctx.run(["ln", "-sf", source, str(link["target"])], privileged=True)
        else:
            logger.warning("%s not found after install; not linking %s", link["source"], link["target"])


@recipe("apt_repository")
def install_from_apt_repository(ctx: RecipeCtx, params: Mapping[str, Any]) -> None:
    """Register a signed third-party apt repository and install from it."""
    key_url = str(_require(params, "key_url", "apt_repository"))
    keyring = f"{ctx.paths.keyrings_dir}/{_require(params, 'keyring', 'apt_repository')}"
    list_path = f"{ctx.paths.sources_dir}/{_require(params, 'list_file', 'apt_repository')}"
    source = str(_require(params, "source", "apt_repository"))
    packages = list(_require(params, "packages", "apt_repository"))

    make_dir(ctx.paths.keyrings_dir, sudo=ctx.sudo, dry_run=ctx.dry_run)
    with tempfile.TemporaryDirectory(prefix="devbox-") as tmp:
        tmpkey = str(Path(tmp) / "signing-key")
        fetch_to_file(key_url, tmpkey, dry_run=ctx.dry_run)
        # install -m 0644 leaves the keyring readable by _apt.
        install_file(tmpkey, keyring, sudo=ctx.sudo, dry_run=ctx.dry_run)

        debsig = params.get("debsig")
        if debsig:
            _install_debsig_policy(ctx, debsig, tmpkey=tmpkey, tmp=tmp)

    arch = dpkg_architecture(dry_run=ctx.dry_run)
    make_dir(ctx.paths.sources_dir, sudo=ctx.sudo, dry_run=ctx.dry_run)
    add_apt_source(
        list_path,
        ctx.fmt(source, arch=arch, keyring=keyring),
        sudo=ctx.sudo,
        dry_run=ctx.dry_run,
    )

    logger.info("Updating apt cache…")
    apt_update(sudo=ctx.sudo, dry_run=ctx.dry_run)
    apt_install(packages, sudo=ctx.sudo, dry_run=ctx.dry_run)


def _install_debsig_policy(ctx: RecipeCtx, debsig: Mapping[str, Any], *, tmpkey: str, tmp: str) -> None:
    key_id = str(debsig["key_id"])
    policy_url = str(debsig["policy_url"])
    policy_dir = f"/etc/debsig/policies/{key_id}"
    keyring_dir = f"/usr/share/debsig/keyrings/{key_id}"

    tmppol = str(Path(tmp) / "policy.pol")
    fetch_to_file(policy_url, tmppol, dry_run=ctx.dry_run)
    make_dir(policy_dir, sudo=ctx.sudo, dry_run=ctx.dry_run)
    install_file(tmppol, f"{policy_dir}/{policy_url.rsplit('/', 1)[-1]}", sudo=ctx.sudo, dry_run=ctx.dry_run)

    make_dir(keyring_dir, sudo=ctx.sudo, dry_run=ctx.dry_run)
    dearmor_key(tmpkey, f"{keyring_dir}/debsig.gpg", sudo=ctx.sudo, dry_run=ctx.dry_run)


@recipe("install_script")
def run_install_script(ctx: RecipeCtx, params: Mapping[str, Any]) -> None:
    url = str(_require(params, "url", "install_script"))
    args = [ctx.fmt(str(a)) for a in params.get("args") or ()]

    script = fetch_text(url, dry_run=ctx.dry_run)
    ctx.run(["sh", "-c", script, "--", *args])

    if params.get("bin_dir"):
        prepend_path(ctx.fmt(str(params["bin_dir"])))


@recipe("github_release")
def install_github_release(ctx: RecipeCtx, params: Mapping[str, Any]) -> None:
    """Download a release tarball from GitHub and install its binary."""
    repo = str(_require(params, "repo", "github_release"))
    binary = str(_require(params, "binary", "github_release"))
    asset_tpl = str(_require(params, "asset", "github_release"))

    machine = platform.machine()
    arch = str((params.get("arch_names") or {}).get(machine.lower(), machine))

    version = latest_release_version(repo, dry_run=ctx.dry_run)
    asset = ctx.fmt(asset_tpl, version=version, arch=arch)
    url = f"https://github.com/{repo}/releases/latest/download/{asset}"
    logger.info("Installing %s %s (%s)", binary, version, arch)

    with tempfile.TemporaryDirectory(prefix="devbox-") as tmp:
        archive = str(Path(tmp) / asset)
        fetch_to_file(url, archive, dry_run=ctx.dry_run)
        ctx.run(["tar", "xf", archive, "-C", tmp, binary])
        install_file(
            str(Path(tmp) / binary),
            f"{ctx.paths.system_bin}/{binary}",
            mode="0755",
            sudo=ctx.sudo,
            dry_run=ctx.dry_run,
        )


@recipe("rustup")
def install_rust_toolchain(ctx: RecipeCtx, params: Mapping[str, Any]) -> None:
    url = str(params.get("url") or "https://sh.rustup.rs")
    build_packages = list(params.get("build_packages") or ())

    if build_packages:
        logger.info("Installing build dependencies…")
        apt_update(sudo=ctx.sudo, dry_run=ctx.dry_run)
        apt_install(build_packages, sudo=ctx.sudo, dry_run=ctx.dry_run)

    script = ctx.run(["curl", "--proto", "=https", "--tlsv1.2", "-sSf", url]).stdout
    ctx.run(["sh", "-s", "--", "-y"], input_text=script)

    # Equivalent of sourcing ~/.cargo/env for the rest of this run.
    prepend_path(ctx.paths.cargo_bin)


def _cargo_executable(ctx: RecipeCtx) -> str:
    found = which("cargo")
    if found:
        return found
    return str(ctx.paths.cargo_bin / "cargo")


@recipe("cargo")
def install_with_cargo(ctx: RecipeCtx, params: Mapping[str, Any]) -> None:
    installs = _require(params, "installs", "cargo")
    cargo = _cargo_executable(ctx)
    for args in installs:
        ctx.run([cargo, "install", *[str(a) for a in args]])
    prepend_path(ctx.paths.cargo_bin)


@recipe("git_clone")
def install_from_git_clone(ctx: RecipeCtx, params: Mapping[str, Any]) -> None:
    url = str(_require(params, "url", "git_clone"))
    dest = ctx.paths.home / str(_require(params, "dest", "git_clone"))
    install = [str(a) for a in params.get("install") or ()]

    if (dest / ".git").exists():
        logger.info("%s already cloned; updating", dest)
        ctx.run(["git", "-C", str(dest), "pull", "--ff-only"])
    else:
        ctx.run(["git", "clone", "--depth", "1", url, str(dest)])

    if install:
        ctx.run([str(dest / install[0]), *install[1:]])

    if params.get("bin_dir"):
        prepend_path(dest / str(params["bin_dir"]))


@recipe("command")
def run_commands(ctx: RecipeCtx, params: Mapping[str, Any]) -> None:
    for argv in _require(params, "commands", "command"):
        ctx.run([ctx.fmt(str(a)) for a in argv], privileged=bool(params.get("privileged", False)))
