"""
assetry/registry - Catalog side of asset resolution.

- versions: semantic version comparison and ``path@version`` references
- index: Category, IndexEntry, Index and ``index.yaml`` loading
- client: CatalogClient protocol and FilesystemCatalogClient
- cache: persisted record of the last fetched index version
"""

from .cache import DEFAULT_MAX_AGE, IndexCache, IndexCacheRecord
from .client import CatalogClient, CatalogError, FetchResult, FilesystemCatalogClient
from .index import Category, Index, IndexEntry, IndexLoadError, load_index

__all__ = [
    "Category",
    "Index",
    "IndexEntry",
    "IndexLoadError",
    "load_index",
    "CatalogClient",
    "CatalogError",
    "FetchResult",
    "FilesystemCatalogClient",
    "DEFAULT_MAX_AGE",
    "IndexCache",
    "IndexCacheRecord",
]
