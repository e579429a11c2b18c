"""
Test fixtures and utilities for assetry tests.

Provides temporary config directories, an on-disk catalog tree builder,
in-memory catalog clients and git repository helpers.
"""

import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import yaml

from assetry.config.paths import ConfigPaths
from assetry.config.store import InstalledConfigStore
from assetry.registry import versions
from assetry.registry.client import CatalogError, FetchResult
from assetry.registry.index import Category, Index, IndexEntry

INDEX_MODULE = "github.com/acme/assets/index@v0"
ASSETS_BASE = "github.com/acme/assets"

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


# ============================================================================
# Config Fixtures
# ============================================================================


@pytest.fixture
def config_paths(tmp_path) -> ConfigPaths:
    """Global and local config directories under tmp_path (not yet created)."""
    return ConfigPaths(global_dir=tmp_path / "global", local_dir=tmp_path / "work" / ".assetry")


@pytest.fixture
def store(config_paths) -> InstalledConfigStore:
    return InstalledConfigStore(config_paths)


def write_installed(config_dir: Path, category: Category, assets: Dict[str, Dict[str, Any]]) -> Path:
    """Write an installed-config file for one category."""
    config_dir.mkdir(parents=True, exist_ok=True)
    path = config_dir / f"{category.value}.yaml"
    path.write_text(yaml.safe_dump({category.value: assets}, sort_keys=False))
    return path


# ============================================================================
# Catalog Tree Fixtures
# ============================================================================


def module_ref(category: Category, name: str, version: str = "v0") -> str:
    return f"{ASSETS_BASE}/{category.value}/{name}@{version}"


class CatalogTree:
    """Builds a mirrored catalog tree: <root>/<module path>/<version>/."""

    def __init__(self, root: Path):
        self.root = root

    def module_dir(self, module: str, version: str) -> Path:
        path = self.root.joinpath(*versions.module_of(module).split("/")) / version
        path.mkdir(parents=True, exist_ok=True)
        return path

    def add_asset(
        self,
        category: Category,
        name: str,
        version: str,
        definition: Dict[str, Any],
        deps: Optional[List[str]] = None,
    ) -> Path:
        """Publish an asset module version with asset.yaml and module.yaml."""
        path = self.module_dir(module_ref(category, name), version)
        (path / "asset.yaml").write_text(yaml.safe_dump({category.singular: definition}))
        (path / "module.yaml").write_text(yaml.safe_dump({"deps": deps or []}))
        return path

    def add_index(self, version: str, index: Dict[str, Any], module: str = INDEX_MODULE) -> Path:
        """Publish an index module version."""
        path = self.module_dir(module, version)
        (path / "index.yaml").write_text(yaml.safe_dump(index))
        return path


@pytest.fixture
def catalog_tree(tmp_path) -> CatalogTree:
    root = tmp_path / "catalog"
    root.mkdir()
    return CatalogTree(root)


# ============================================================================
# In-memory Catalog Clients
# ============================================================================


class StubCatalog:
    """In-memory CatalogClient.

    Args:
        modules: module path -> {version: source dir}
    """

    def __init__(self, modules: Optional[Dict[str, Dict[str, Path]]] = None):
        self.modules = modules or {}
        self.calls: List[tuple] = []

    def module_versions(self, module_ref: str) -> List[str]:
        self.calls.append(("module_versions", module_ref))
        path = versions.module_of(module_ref)
        if path not in self.modules:
            raise CatalogError(f"module {path} not found")
        return versions.sort_versions(self.modules[path])

    def resolve_latest_version(self, module_ref: str) -> str:
        self.calls.append(("resolve_latest_version", module_ref))
        path, selector = versions.split_ref(module_ref)
        if versions.is_canonical(selector):
            return module_ref
        available = self.module_versions(module_ref)
        if not available:
            raise CatalogError(f"no versions for {module_ref}")
        return f"{path}@{available[-1]}"

    def fetch(self, concrete_ref: str) -> FetchResult:
        self.calls.append(("fetch", concrete_ref))
        path, version = versions.split_ref(concrete_ref)
        try:
            return FetchResult(source_dir=self.modules[path][version])
        except KeyError:
            raise CatalogError(f"module {concrete_ref} not found")


class ExplodingCatalog:
    """CatalogClient that fails the test if it is ever used."""

    def module_versions(self, module_ref):
        raise AssertionError(f"catalog consulted: module_versions({module_ref})")

    def resolve_latest_version(self, module_ref):
        raise AssertionError(f"catalog consulted: resolve_latest_version({module_ref})")

    def fetch(self, concrete_ref):
        raise AssertionError(f"catalog consulted: fetch({concrete_ref})")


class StaticLoader:
    """Stand-in for IndexLoader serving a fixed index and client."""

    def __init__(self, index: Optional[Index], client=None):
        self.index = index
        self.client = client
        self.calls = 0

    def ensure_index(self) -> Optional[Index]:
        self.calls += 1
        return self.index

    def get_client(self):
        return self.client


class ExplodingLoader:
    """Loader that fails the test if the catalog index is requested."""

    def ensure_index(self):
        raise AssertionError("catalog index requested")

    def get_client(self):
        raise AssertionError("catalog client requested")


def make_index(**categories: Dict[str, IndexEntry]) -> Index:
    return Index(**categories)


# ============================================================================
# Git Helpers
# ============================================================================


def run_git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


def init_git_repo(path: Path, branch: str = "main") -> Path:
    """Initialize a repository with a committer identity and one commit."""
    path.mkdir(parents=True, exist_ok=True)
    run_git(path, "init")
    run_git(path, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
    run_git(path, "config", "user.name", "Test User")
    run_git(path, "config", "user.email", "test@example.com")
    run_git(path, "config", "commit.gpgsign", "false")
    (path / "README.md").write_text("assets\n")
    run_git(path, "add", ".")
    run_git(path, "commit", "-m", "Initial commit")
    return path


def commit_all(path: Path, message: str) -> None:
    run_git(path, "add", ".")
    run_git(path, "commit", "-m", message)


def stub_for(catalog_tree: CatalogTree, *published) -> StubCatalog:
    """StubCatalog serving (category, name, version) modules from catalog_tree."""
    modules: Dict[str, Dict[str, Path]] = {}
    for category, name, version in published:
        path = f"{ASSETS_BASE}/{category.value}/{name}"
        modules.setdefault(path, {})[version] = catalog_tree.module_dir(module_ref(category, name), version)
    return StubCatalog(modules)
