"""
Tests for installing catalog assets into the installed configuration.
"""

import pytest
import yaml

from assetry.registry.index import Category, Index, IndexEntry
from assetry.runtime.errors import InstallError
from assetry.runtime.install import extract_asset_content, find_role_dependency, install_asset
from assetry.runtime.types import AssetMatch, AssetSource

from conftest import ASSETS_BASE, StubCatalog, module_ref, stub_for, write_installed


def catalog_match(category, name, module=None):
    return AssetMatch(
        name=name,
        category=category,
        source=AssetSource.CATALOG,
        entry=IndexEntry(module=module if module is not None else module_ref(category, name)),
    )


class TestInstallAsset:
    """Tests for install_asset."""

    def test_installs_category_fields_with_origin(self, catalog_tree, store):
        """Only category fields are persisted, origin is the concrete ref."""
        catalog_tree.add_asset(Category.AGENTS, "ai/claude", "v0.1.0", {
            "description": "Claude CLI",
            "bin": "claude",
            "command": "{bin} --model {model}",
            "default_model": "sonnet",
            "models": {"sonnet": "claude-sonnet"},
            "maintainer": "not persisted",
        })
        catalog_tree.add_asset(Category.AGENTS, "ai/claude", "v0.2.0", {"bin": "claude"})
        client = stub_for(catalog_tree,
                          (Category.AGENTS, "ai/claude", "v0.1.0"),
                          (Category.AGENTS, "ai/claude", "v0.2.0"))

        concrete = install_asset(client, None, catalog_match(Category.AGENTS, "ai/claude"), store)

        assert concrete == f"{ASSETS_BASE}/agents/ai/claude@v0.2.0"
        assert store.load().get(Category.AGENTS, "ai/claude") == {
            "origin": concrete,
            "bin": "claude",
        }

    def test_field_order_origin_first(self, catalog_tree, store):
        """origin leads the persisted definition."""
        catalog_tree.add_asset(Category.CONTEXTS, "readme", "v0.1.0", {
            "file": "README.md", "description": "Project readme", "default": True,
        })
        client = stub_for(catalog_tree, (Category.CONTEXTS, "readme", "v0.1.0"))
        install_asset(client, None, catalog_match(Category.CONTEXTS, "readme"), store)

        data = yaml.safe_load(store.config_file(Category.CONTEXTS).read_text())
        assert list(data["contexts"]["readme"]) == ["origin", "description", "file", "default"]

    def test_major_appended_to_bare_module(self, catalog_tree, store):
        """Modules without a version resolve within v0."""
        catalog_tree.add_asset(Category.ROLES, "go", "v0.1.0", {"prompt": "Go"})
        client = stub_for(catalog_tree, (Category.ROLES, "go", "v0.1.0"))
        bare = f"{ASSETS_BASE}/roles/go"

        install_asset(client, None, catalog_match(Category.ROLES, "go", module=bare), store)
        assert ("resolve_latest_version", bare + "@v0") in client.calls

    def test_definition_keyed_by_name(self, catalog_tree, store):
        """asset.yaml may key the definition by the asset name."""
        path = catalog_tree.module_dir(module_ref(Category.ROLES, "go"), "v0.1.0")
        (path / "asset.yaml").write_text(yaml.safe_dump({"go": {"prompt": "Go"}}))
        client = stub_for(catalog_tree, (Category.ROLES, "go", "v0.1.0"))

        install_asset(client, None, catalog_match(Category.ROLES, "go"), store)
        assert store.load().get(Category.ROLES, "go")["prompt"] == "Go"

    def test_missing_definition(self, catalog_tree, store):
        """A module without the definition fails to install."""
        path = catalog_tree.module_dir(module_ref(Category.ROLES, "go"), "v0.1.0")
        (path / "asset.yaml").write_text(yaml.safe_dump({"other": {}}))
        client = stub_for(catalog_tree, (Category.ROLES, "go", "v0.1.0"))

        with pytest.raises(InstallError, match="asset definition not found in module"):
            install_asset(client, None, catalog_match(Category.ROLES, "go"), store)

    def test_missing_asset_file(self, catalog_tree, store):
        catalog_tree.module_dir(module_ref(Category.ROLES, "go"), "v0.1.0")
        client = stub_for(catalog_tree, (Category.ROLES, "go", "v0.1.0"))
        with pytest.raises(InstallError, match="no asset.yaml"):
            install_asset(client, None, catalog_match(Category.ROLES, "go"), store)

    def test_catalog_failure(self, store):
        """Catalog errors surface as InstallError."""
        with pytest.raises(InstallError, match="installing go"):
            install_asset(StubCatalog(), None, catalog_match(Category.ROLES, "go"), store)

    def test_no_module_reference(self, store):
        with pytest.raises(InstallError, match="no module reference"):
            install_asset(StubCatalog(), None, catalog_match(Category.ROLES, "go", module=""), store)

    def test_existing_name_not_overwritten(self, catalog_tree, config_paths, store):
        """Installing over an existing asset fails and keeps the original."""
        write_installed(config_paths.global_dir, Category.ROLES, {"go": {"prompt": "mine"}})
        catalog_tree.add_asset(Category.ROLES, "go", "v0.1.0", {"prompt": "theirs"})
        client = stub_for(catalog_tree, (Category.ROLES, "go", "v0.1.0"))

        with pytest.raises(InstallError, match="already exists"):
            install_asset(client, None, catalog_match(Category.ROLES, "go"), store)
        assert store.load().get(Category.ROLES, "go") == {"prompt": "mine"}


class TestRoleDependency:
    """Tests for installing a task's role dependency."""

    def _publish(self, catalog_tree):
        role_ref = module_ref(Category.ROLES, "go/expert")
        catalog_tree.add_asset(Category.ROLES, "go/expert", "v0.1.0", {"prompt": "You are a Go expert"})
        catalog_tree.add_asset(
            Category.TASKS, "go/review", "v0.1.0",
            {"prompt": "Review the code", "role": {"prompt": "inline role"}},
            deps=[f"{ASSETS_BASE}/contexts/readme@v0", role_ref],
        )
        index = Index(
            roles={"go/expert": IndexEntry(module=role_ref)},
            tasks={"go/review": IndexEntry(module=module_ref(Category.TASKS, "go/review"))},
        )
        client = stub_for(catalog_tree,
                          (Category.ROLES, "go/expert", "v0.1.0"),
                          (Category.TASKS, "go/review", "v0.1.0"))
        return index, client

    def test_role_installed_and_referenced(self, catalog_tree, store):
        """The role is installed first and the task refers to it by name."""
        index, client = self._publish(catalog_tree)

        install_asset(client, index, catalog_match(Category.TASKS, "go/review"), store)

        config = store.load()
        assert config.get(Category.TASKS, "go/review")["role"] == "go/expert"
        assert config.origin(Category.ROLES, "go/expert") == f"{ASSETS_BASE}/roles/go/expert@v0.1.0"

    def test_installed_role_reused(self, catalog_tree, config_paths, store):
        """An already installed role is not reinstalled."""
        index, client = self._publish(catalog_tree)
        write_installed(config_paths.global_dir, Category.ROLES, {"go/expert": {"prompt": "mine"}})

        install_asset(client, index, catalog_match(Category.TASKS, "go/review"), store)

        assert store.load().get(Category.ROLES, "go/expert") == {"prompt": "mine"}
        assert store.load().get(Category.TASKS, "go/review")["role"] == "go/expert"

    def test_role_missing_from_index_keeps_inline(self, catalog_tree, store):
        """A role dependency unknown to the index leaves the inline role."""
        _, client = self._publish(catalog_tree)
        index = Index(tasks={"go/review": IndexEntry(module=module_ref(Category.TASKS, "go/review"))})

        install_asset(client, index, catalog_match(Category.TASKS, "go/review"), store)

        assert store.load().get(Category.TASKS, "go/review")["role"] == {"prompt": "inline role"}
        assert not store.load().has(Category.ROLES, "go/expert")

    def test_task_failure_reports_installed_role(self, catalog_tree, config_paths, store):
        """A role installed before the task itself fails is reported on the error."""
        index, client = self._publish(catalog_tree)
        write_installed(config_paths.global_dir, Category.TASKS, {"go/review": {"prompt": "mine"}})

        with pytest.raises(InstallError, match="go/review") as excinfo:
            install_asset(client, index, catalog_match(Category.TASKS, "go/review"), store)

        assert excinfo.value.installed == ["roles/go/expert"]
        assert store.load().has(Category.ROLES, "go/expert")

    def test_reused_role_not_reported(self, catalog_tree, config_paths, store):
        """A role that was already installed is not part of a failed install."""
        index, client = self._publish(catalog_tree)
        write_installed(config_paths.global_dir, Category.ROLES, {"go/expert": {"prompt": "mine"}})
        write_installed(config_paths.global_dir, Category.TASKS, {"go/review": {"prompt": "mine"}})

        with pytest.raises(InstallError) as excinfo:
            install_asset(client, index, catalog_match(Category.TASKS, "go/review"), store)
        assert excinfo.value.installed == []

    def test_find_role_dependency_first_alphabetical(self, tmp_path):
        """The alphabetically first role dependency wins."""
        (tmp_path / "module.yaml").write_text(yaml.safe_dump({"deps": [
            "host/roles/zeta@v0", "host/contexts/readme@v0", "host/roles/alpha@v0",
        ]}))
        assert find_role_dependency(tmp_path) == "host/roles/alpha@v0"

    def test_find_role_dependency_none(self, tmp_path):
        assert find_role_dependency(tmp_path) == ""
        (tmp_path / "module.yaml").write_text("deps: [host/contexts/readme@v0]\n")
        assert find_role_dependency(tmp_path) == ""


class TestExtractAssetContent:
    """Tests for extract_asset_content."""

    def test_role_name_replaces_inline_role(self, tmp_path):
        (tmp_path / "asset.yaml").write_text(yaml.safe_dump({"task": {"role": {"prompt": "x"}, "prompt": "p"}}))
        match = catalog_match(Category.TASKS, "review")
        assert extract_asset_content(tmp_path, match, "m@v0.1.0", role_name="go") == {
            "origin": "m@v0.1.0",
            "role": "go",
            "prompt": "p",
        }
