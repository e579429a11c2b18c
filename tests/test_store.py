"""
Tests for config paths and the installed-configuration store.
"""

from pathlib import Path

import pytest
import yaml

from assetry.config.paths import Scope, cache_dir, global_config_dir, is_file_path, resolve_paths
from assetry.config.store import DuplicateAssetError, InstalledConfigStore
from assetry.registry.index import Category

from conftest import write_installed


class TestPaths:
    """Tests for directory discovery."""

    def test_xdg_overrides(self, tmp_path):
        """XDG variables relocate config and cache directories."""
        env = {"XDG_CONFIG_HOME": str(tmp_path / "cfg"), "XDG_CACHE_HOME": str(tmp_path / "cache")}
        assert global_config_dir(env) == tmp_path / "cfg" / "assetry"
        assert cache_dir(env) == tmp_path / "cache" / "assetry"

    def test_local_dir_under_working_dir(self, tmp_path):
        """The local config lives in .assetry of the working directory."""
        paths = resolve_paths(tmp_path, env={"XDG_CONFIG_HOME": str(tmp_path)})
        assert paths.local_dir == tmp_path / ".assetry"

    def test_for_scope_lists_existing_only(self, config_paths):
        """Only existing directories are loaded, global first."""
        assert config_paths.for_scope() == []
        config_paths.local_dir.mkdir(parents=True)
        config_paths.global_dir.mkdir(parents=True)
        assert config_paths.for_scope() == [config_paths.global_dir, config_paths.local_dir]
        assert config_paths.for_scope(Scope.LOCAL) == [config_paths.local_dir]

    @pytest.mark.parametrize("value,expected", [
        ("./role.md", True),
        ("/etc/role.md", True),
        ("~/role.md", True),
        ("golang/assistant", False),
        ("", False),
    ])
    def test_is_file_path(self, value, expected):
        assert is_file_path(value) is expected


class TestLoad:
    """Tests for InstalledConfigStore.load."""

    def test_empty_when_nothing_installed(self, store):
        """No directories means an empty configuration."""
        config = store.load()
        assert all(config.names(c) == [] for c in Category)

    def test_local_overrides_global(self, config_paths, store):
        """A local definition replaces the global one with the same name."""
        write_installed(config_paths.global_dir, Category.ROLES, {
            "go": {"description": "global"},
            "rust": {"description": "global rust"},
        })
        write_installed(config_paths.local_dir, Category.ROLES, {"go": {"description": "local"}})

        config = store.load()
        assert config.names(Category.ROLES) == ["go", "rust"]
        assert config.get(Category.ROLES, "go")["description"] == "local"

    def test_scope_global(self, config_paths):
        """The global scope ignores local definitions."""
        write_installed(config_paths.global_dir, Category.TASKS, {"review": {}})
        write_installed(config_paths.local_dir, Category.TASKS, {"local-only": {}})
        config = InstalledConfigStore(config_paths, Scope.GLOBAL).load()
        assert config.names(Category.TASKS) == ["review"]

    def test_entry_uses_origin_as_module(self, config_paths, store):
        """The scoring view exposes origin, description and tags."""
        write_installed(config_paths.global_dir, Category.ROLES, {
            "go": {"origin": "host/roles/go@v0.1.0", "description": "Go", "tags": ["go", 1]},
        })
        entry = store.load().entry(Category.ROLES, "go")
        assert entry.module == "host/roles/go@v0.1.0"
        assert entry.tags == ("go", "1")

    def test_non_mapping_definition_skipped(self, config_paths, store):
        """Definitions that are not mappings are skipped."""
        write_installed(config_paths.global_dir, Category.ROLES, {"bad": "text", "ok": {}})
        assert store.load().names(Category.ROLES) == ["ok"]

    def test_malformed_yaml(self, config_paths, store):
        """Broken YAML raises ValueError naming the file."""
        config_paths.global_dir.mkdir(parents=True)
        (config_paths.global_dir / "roles.yaml").write_text("roles: [unclosed\n")
        with pytest.raises(ValueError, match="roles.yaml"):
            store.load()

    def test_wrong_section_type(self, config_paths, store):
        """The category section must be a mapping."""
        config_paths.global_dir.mkdir(parents=True)
        (config_paths.global_dir / "tasks.yaml").write_text("tasks: [a, b]\n")
        with pytest.raises(ValueError, match="must be a mapping"):
            store.load()


class TestInstall:
    """Tests for InstalledConfigStore.install."""

    def test_install_creates_file(self, config_paths, store):
        """Installing into an empty directory creates the category file."""
        path = store.install(Category.TASKS, "review", {"origin": "m@v0.1.0", "prompt": "Review"})

        assert path == config_paths.global_dir / "tasks.yaml"
        assert path.read_text().startswith("# assetry configuration")
        data = yaml.safe_load(path.read_text())
        assert data == {"tasks": {"review": {"origin": "m@v0.1.0", "prompt": "Review"}}}

    def test_install_appends(self, config_paths, store):
        """Existing definitions are kept in order."""
        write_installed(config_paths.global_dir, Category.TASKS, {"first": {"prompt": "1"}})
        store.install(Category.TASKS, "second", {"prompt": "2"})
        assert list(yaml.safe_load((config_paths.global_dir / "tasks.yaml").read_text())["tasks"]) == [
            "first",
            "second",
        ]

    def test_install_is_visible_after_reload(self, store):
        """A fresh load sees the installed asset."""
        store.install(Category.ROLES, "go", {"origin": "host/roles/go@v0.1.0"})
        assert store.load().origin(Category.ROLES, "go") == "host/roles/go@v0.1.0"

    def test_install_never_overwrites(self, config_paths, store):
        """Installing an existing name raises DuplicateAssetError."""
        write_installed(config_paths.global_dir, Category.ROLES, {"go": {"prompt": "mine"}})
        with pytest.raises(DuplicateAssetError, match="role 'go' already exists"):
            store.install(Category.ROLES, "go", {"prompt": "theirs"})
        assert store.load().get(Category.ROLES, "go") == {"prompt": "mine"}

    def test_install_into_local_dir(self, config_paths, store):
        """An explicit config directory is honoured."""
        path = store.install(Category.CONTEXTS, "readme", {"file": "README.md"}, config_dir=config_paths.local_dir)
        assert path.parent == Path(config_paths.local_dir)
