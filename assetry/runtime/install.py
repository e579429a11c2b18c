"""
install.py - Install catalog assets into the installed configuration.

A catalog module directory contains:

    module.yaml   module metadata; ``deps`` lists module references
    asset.yaml    the definition, keyed by singular category ("task:")
                  or by the asset name

Installing resolves the entry's module to a concrete version, fetches it,
extracts the fields relevant to the category and persists them with an
``origin`` field recording the concrete reference. Tasks that depend on a
role module get the role installed as its own asset first; the task then
refers to the role by name.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from ..config.store import DuplicateAssetError, InstalledConfigStore
from ..registry.client import CatalogClient, CatalogError
from ..registry.index import Category, Index
from .errors import InstallError
from .types import AssetMatch, AssetSource

logger = logging.getLogger(__name__)

MODULE_FILE = "module.yaml"
ASSET_FILE = "asset.yaml"

# Major selector appended to index module references that carry no version
DEFAULT_MAJOR = "v0"

CATEGORY_FIELDS: Dict[Category, Tuple[str, ...]] = {
    Category.AGENTS: ("description", "tags", "bin", "command", "default_model", "models"),
    Category.ROLES: ("description", "tags", "file", "command", "prompt", "optional"),
    Category.CONTEXTS: ("description", "tags", "file", "command", "prompt", "required", "default"),
    Category.TASKS: ("description", "tags", "role", "file", "command", "prompt"),
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def install_asset(
    client: CatalogClient,
    index: Optional[Index],
    match: AssetMatch,
    store: InstalledConfigStore,
    config_dir: Optional[Path] = None,
) -> str:
    """Install a catalog asset.

    Args:
        client: Catalog client.
        index: Catalog index, used to resolve a task's role dependency
            (None skips role dependency handling).
        match: The catalog candidate to install.
        store: Installed-configuration store.
        config_dir: Target config directory (default: global).

    Returns:
        The concrete module reference that was installed.

    Raises:
        InstallError: On catalog failure, missing definition or duplicate name.
    """
    module_ref = match.entry.module
    if not module_ref:
        raise InstallError(match.name, "index entry has no module reference")
    if "@" not in module_ref:
        module_ref += "@" + DEFAULT_MAJOR

    try:
        concrete = client.resolve_latest_version(module_ref)
        fetched = client.fetch(concrete)
    except CatalogError as e:
        raise InstallError(match.name, str(e)) from e

    role_name, role_installed = "", False
    if match.category == Category.TASKS and index is not None:
        role_name, role_installed = install_role_dependency(
            client, index, Path(fetched.source_dir), store, config_dir
        )

    try:
        content = extract_asset_content(Path(fetched.source_dir), match, concrete, role_name)
        _write_definition(store, match, content, config_dir)
    except InstallError as e:
        # The role stays installed
        if role_installed:
            e.installed.append(f"{Category.ROLES.value}/{role_name}")
        raise

    logger.debug("Installed %s from %s", match.identity, concrete)
    return concrete


def _write_definition(
    store: InstalledConfigStore,
    match: AssetMatch,
    content: Dict[str, Any],
    config_dir: Optional[Path],
) -> None:
    try:
        store.install(match.category, match.name, content, config_dir)
    except DuplicateAssetError as e:
        raise InstallError(match.name, str(e)) from e
    except (OSError, ValueError) as e:
        raise InstallError(match.name, f"writing config: {e}") from e


def find_role_dependency(module_dir: Path) -> str:
    """Return the role module a task module depends on, or "".

    When several role dependencies exist the alphabetically first is used.
    """
    path = Path(module_dir) / MODULE_FILE
    if not path.exists():
        return ""
    try:
        data = _read_yaml(path)
    except (OSError, yaml.YAMLError, UnicodeDecodeError) as e:
        logger.debug("Ignoring unreadable %s: %s", path, e)
        return ""

    deps = data.get("deps") or []
    if isinstance(deps, dict):
        deps = list(deps)
    if not isinstance(deps, list):
        return ""

    for dep in sorted(str(d) for d in deps):
        if "/roles/" in dep:
            return dep
    return ""


def install_role_dependency(
    client: CatalogClient,
    index: Index,
    module_dir: Path,
    store: InstalledConfigStore,
    config_dir: Optional[Path] = None,
) -> Tuple[str, bool]:
    """Install a task's role dependency as its own asset.

    Returns:
        (role_name, installed). role_name is the role to reference from the
        task, or "" when the task has no role dependency or the role is not in
        the index (the task then keeps its inline role). installed is True
        only when this call wrote the role to the config.
    """
    dep = find_role_dependency(module_dir)
    if not dep:
        return "", False

    found = index.find_by_module(Category.ROLES, dep)
    if found is None:
        logger.debug("Role dependency %s not in index; keeping inline role", dep)
        return "", False
    role_name, role_entry = found

    if store.load().has(Category.ROLES, role_name):
        return role_name, False

    role_match = AssetMatch(
        name=role_name,
        category=Category.ROLES,
        source=AssetSource.CATALOG,
        entry=role_entry,
    )
    try:
        install_asset(client, None, role_match, store, config_dir)
    except InstallError as e:
        raise InstallError(role_name, f"role dependency: {e.reason}") from e
    return role_name, True


def extract_asset_content(
    module_dir: Path,
    match: AssetMatch,
    origin: str,
    role_name: str = "",
) -> Dict[str, Any]:
    """Build the installed definition from a fetched module.

    Args:
        module_dir: Fetched module directory.
        match: Asset being installed.
        origin: Concrete module reference recorded as ``origin``.
        role_name: If set, replaces the task's inline role with this name.

    Raises:
        InstallError: If the definition is missing or unreadable.
    """
    path = Path(module_dir) / ASSET_FILE
    try:
        data = _read_yaml(path)
    except FileNotFoundError:
        raise InstallError(match.name, f"no {ASSET_FILE} in module {origin}")
    except (OSError, yaml.YAMLError, UnicodeDecodeError) as e:
        raise InstallError(match.name, f"reading {path}: {e}") from e

    singular = match.category.singular
    definition = data.get(singular)
    if not isinstance(definition, dict):
        definition = data.get(match.name)
    if not isinstance(definition, dict):
        raise InstallError(match.name, f"asset definition not found in module (tried {singular!r})")

    content: Dict[str, Any] = {"origin": origin}
    for field_name in CATEGORY_FIELDS[match.category]:
        if field_name == "role" and role_name:
            content["role"] = role_name
            continue
        if field_name in definition:
            content[field_name] = definition[field_name]
    return content
