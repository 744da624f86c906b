"""
Shared test fixtures.

Nothing here touches a real package manager: tools are installed into an
in-memory FakeHost by a test-only recipe registered for the duration of a
test.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from devbox_installer import recipes as recipes_mod
from devbox_installer.lib.env import Paths
from devbox_installer.recipes import RecipeCtx
from tests.helpers import FakeHost


@pytest.fixture
def host(monkeypatch: pytest.MonkeyPatch) -> FakeHost:
    h = FakeHost()
    monkeypatch.setitem(recipes_mod.RECIPES, "fake", h.recipe)
    return h


@pytest.fixture
def ctx(tmp_path: Path) -> RecipeCtx:
    return RecipeCtx(paths=Paths(home=tmp_path / "home"), use_sudo=False)


@pytest.fixture(autouse=True)
def _restore_path(monkeypatch: pytest.MonkeyPatch) -> None:
    """Recipes prepend to PATH; keep that from leaking between tests."""
    monkeypatch.setenv("PATH", "/usr/local/bin:/usr/bin:/bin")


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    root = logging.getLogger()
    for h in getattr(root, "_devbox_handlers", []):
        root.removeHandler(h)
        h.close()
    setattr(root, "_devbox_handlers", [])
