"""
Tool manifest loading and validation.
"""

from __future__ import annotations

import pytest

from devbox_installer.errors import ManifestError
from devbox_installer.plan import topological_order
from devbox_installer.recipes import RECIPES
from devbox_installer.tools import load_manifest, manifest_from_dict


@pytest.fixture(scope="module")
def manifest():
    return load_manifest()


class TestDefaultManifest:
    def test_tool_list(self, manifest):
        assert manifest.names() == [
            "gh",
            "chezmoi",
            "lazygit",
            "cargo",
            "bob",
            "fzf",
            "yazi",
            "git",
            "ripgrep",
            "fd",
            "1password",
        ]

    def test_probed_commands(self, manifest):
        assert manifest.get("ripgrep").command == "rg"
        assert manifest.get("1password").command == "op"
        assert manifest.get("gh").version_args == ("--version",)

    def test_fetcher_is_wget(self, manifest):
        assert manifest.fetcher is not None
        assert manifest.fetcher.command == "wget"
        assert manifest.fetcher.name not in manifest.names()

    def test_every_recipe_is_registered(self, manifest):
        for spec in [*manifest.tools, manifest.fetcher]:
            assert spec.recipe in RECIPES, spec.name
            for hook in (spec.post_install, spec.update):
                if hook is not None:
                    assert hook.recipe in RECIPES, spec.name

    def test_cargo_tools_depend_on_cargo(self, manifest):
        assert manifest.get("bob").depends_on == ("cargo",)
        assert manifest.get("yazi").depends_on == ("cargo",)
        assert manifest.get("fzf").depends_on == ("git",)

    def test_install_order(self, manifest):
        order = topological_order(manifest.tools)
        assert order.index("cargo") < order.index("bob")
        assert order.index("cargo") < order.index("yazi")
        assert order.index("git") < order.index("fzf")

    def test_hooks(self, manifest):
        bob = manifest.get("bob")
        assert bob.post_install is not None
        assert bob.post_install.recipe == "command"
        assert list(bob.post_install.params["commands"]) == [("bob", "install", "stable"), ("bob", "use", "stable")]
        assert manifest.get("cargo").update.params["commands"] == (("rustup", "update"),)
        assert manifest.get("cargo").update.requires == "rustup"
        assert "requires" not in manifest.get("cargo").update.params

    def test_params_are_frozen(self, manifest):
        with pytest.raises(TypeError):
            manifest.get("git").params["packages"] = ["vim"]  # type: ignore[index]


class TestManifestValidation:
    def test_missing_command(self):
        with pytest.raises(ManifestError, match="command"):
            manifest_from_dict({"tools": [{"name": "x", "recipe": "apt"}]})

    def test_duplicate_names(self):
        entry = {"name": "x", "command": "x", "recipe": "apt"}
        with pytest.raises(ManifestError, match="Duplicate"):
            manifest_from_dict({"tools": [entry, dict(entry)]})

    def test_unknown_dependency(self):
        with pytest.raises(ManifestError, match="unknown tool"):
            manifest_from_dict({"tools": [{"name": "x", "command": "x", "recipe": "apt", "depends_on": ["y"]}]})

    def test_not_a_mapping(self):
        with pytest.raises(ManifestError):
            manifest_from_dict(["tools"])  # type: ignore[arg-type]

    def test_load_from_file(self, tmp_path):
        p = tmp_path / "tools.yaml"
        p.write_text(
            "tools:\n"
            "  - name: jq\n"
            "    command: jq\n"
            "    recipe: apt\n"
            "    params: {packages: [jq]}\n",
            encoding="utf-8",
        )
        m = load_manifest(str(p))
        assert m.names() == ["jq"]
        assert m.fetcher is None
        assert m.get("jq").label == "jq"

    def test_malformed_yaml(self, tmp_path):
        p = tmp_path / "tools.yaml"
        p.write_text("tools: [unclosed\n", encoding="utf-8")
        with pytest.raises(ManifestError, match="not valid YAML"):
            load_manifest(str(p))

    def test_prerequisites_must_be_a_single_entry_list(self):
        wget = {"name": "wget", "command": "wget", "recipe": "apt"}
        with pytest.raises(ManifestError, match="prerequisites"):
            manifest_from_dict({"tools": [], "prerequisites": [wget, dict(wget, name="curl")]})
        with pytest.raises(ManifestError, match="prerequisites"):
            manifest_from_dict({"tools": [], "prerequisites": wget})


class TestSkip:
    def test_skip_drops_tool(self, manifest):
        assert "1password" not in manifest.without(["1password"]).names()

    def test_skip_keeps_required_dependency(self, manifest):
        names = manifest.without(["cargo"]).names()
        assert "cargo" in names

    def test_skip_dependency_with_its_dependents(self, manifest):
        names = manifest.without(["cargo", "bob", "yazi"]).names()
        assert not {"cargo", "bob", "yazi"} & set(names)

    def test_skip_keeps_dependencies_of_kept_dependencies(self):
        m = manifest_from_dict(
            {
                "tools": [
                    {"name": "a", "command": "a", "recipe": "apt", "depends_on": ["b"]},
                    {"name": "b", "command": "b", "recipe": "apt", "depends_on": ["c"]},
                    {"name": "c", "command": "c", "recipe": "apt"},
                    {"name": "d", "command": "d", "recipe": "apt"},
                ]
            }
        )
        assert m.without(["b", "c", "d"]).names() == ["a", "b", "c"]

    def test_skip_unknown(self, manifest):
        with pytest.raises(ManifestError, match="Unknown tool"):
            manifest.without(["emacs"])
