"""
assetry/config - Local configuration.

- paths: global/local/cache directory discovery
- settings: pydantic Settings layered from YAML files and environment
- store: installed-configuration store (one YAML file per category)
"""

from .paths import ConfigPaths, Scope, cache_dir, is_file_path, resolve_paths
from .settings import ScoreWeights, Settings, load_settings
from .store import DuplicateAssetError, InstalledConfig, InstalledConfigStore

__all__ = [
    "ConfigPaths",
    "Scope",
    "cache_dir",
    "is_file_path",
    "resolve_paths",
    "ScoreWeights",
    "Settings",
    "load_settings",
    "DuplicateAssetError",
    "InstalledConfig",
    "InstalledConfigStore",
]
