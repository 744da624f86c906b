"""
Recipe executor: dependency checks and post-install verification.
"""

from __future__ import annotations

import os

import pytest

from devbox_installer.errors import InstallVerificationFailed
from devbox_installer.executor import install_tool, refresh_user_paths

from tests.helpers import fake_hook, fake_tool


class TestInstallTool:
    def test_installs_and_verifies(self, host, ctx):
        r = install_tool(fake_tool("rg"), deps=[], ctx=ctx, prober=host.prober)

        assert r.present
        assert r.version == "rg 1.0"
        assert host.actions == ["install:rg"]
        # probed once, after the recipe
        assert host.probes == ["rg"]

    def test_missing_dependency_blocks_recipe(self, host, ctx):
        cargo = fake_tool("cargo", label="Rust toolchain (cargo)")

        with pytest.raises(InstallVerificationFailed, match="Rust toolchain \\(cargo\\) is required"):
            install_tool(fake_tool("bob", depends_on=["cargo"]), deps=[cargo], ctx=ctx, prober=host.prober)

        assert host.actions == []

    def test_present_dependency(self, host, ctx):
        host.installed = {"cargo"}
        install_tool(fake_tool("bob", depends_on=["cargo"]), deps=[fake_tool("cargo")], ctx=ctx, prober=host.prober)
        assert host.actions == ["install:bob"]

    def test_still_absent_after_recipe(self, host, ctx):
        host.broken = {"op"}
        with pytest.raises(InstallVerificationFailed, match="1Password CLI installation appears to have failed"):
            install_tool(fake_tool("op", label="1Password CLI"), deps=[], ctx=ctx, prober=host.prober)

    def test_post_install_hook(self, host, ctx):
        spec = fake_tool("bob", post_install=fake_hook("bob", "use-stable"))
        install_tool(spec, deps=[], ctx=ctx, prober=host.prober)
        assert host.actions == ["install:bob", "use-stable:bob"]


def test_refresh_user_paths_adds_existing_dirs(ctx):
    ctx.paths.cargo_bin.mkdir(parents=True)

    refresh_user_paths(ctx)

    entries = os.environ["PATH"].split(os.pathsep)
    assert str(ctx.paths.cargo_bin) in entries
    assert str(ctx.local_bin) not in entries
