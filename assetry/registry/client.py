"""
client.py - Catalog client contract and the filesystem-backed catalog.

The resolver and the validator talk to the catalog only through the
CatalogClient protocol:

    resolve_latest_version(module_ref) -> concrete_ref
    fetch(concrete_ref) -> FetchResult(source_dir)
    module_versions(module_ref) -> [version, ...]

Every failure is raised as CatalogError. The resolver treats it as
"catalog unavailable"; the validator treats it as fatal.

FilesystemCatalogClient serves a mirrored catalog tree laid out as

    <root>/<module path>/<version>/...

e.g. ``<root>/github.com/acme/assets/index/v0.3.1/index.yaml``.
"""

from __future__ import annotations

import logging
import stat
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Protocol

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from . import versions

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    """Raised when the catalog cannot answer a request."""

    pass


@dataclass(frozen=True)
class FetchResult:
    """Result of fetching a module.

    Attributes:
        source_dir: Filesystem path holding the fetched module content.
    """

    source_dir: Path


class CatalogClient(Protocol):
    """Contract for catalog access."""

    def resolve_latest_version(self, module_ref: str) -> str:
        """Resolve ``path@v0`` (or a bare path) to ``path@vX.Y.Z``."""
        ...

    def fetch(self, concrete_ref: str) -> FetchResult:
        """Fetch the module content for a concrete reference."""
        ...

    def module_versions(self, module_ref: str) -> List[str]:
        """List all published versions of a module."""
        ...


class FilesystemCatalogClient:
    """Catalog client over a mirrored directory tree.

    Fetches retry transient I/O errors with exponential backoff so the same
    client works for catalogs mounted over a network filesystem.
    """

    def __init__(
        self,
        root: Path,
        retries: int = 3,
        base_wait: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.root = Path(root)
        self.retries = max(1, retries)
        self.base_wait = base_wait
        self._sleep = sleep

    def _module_dir(self, module_path: str) -> Path:
        parts = [p for p in module_path.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise CatalogError(f"invalid module path {module_path!r}")
        return self.root.joinpath(*parts)

    def module_versions(self, module_ref: str) -> List[str]:
        path, selector = versions.split_ref(module_ref)
        module_dir = self._module_dir(path)
        if not module_dir.is_dir():
            raise CatalogError(f"module {path} not found in catalog {self.root}")

        try:
            found = [
                child.name
                for child in module_dir.iterdir()
                if child.is_dir() and versions.is_canonical(child.name)
            ]
        except OSError as e:
            raise CatalogError(f"listing versions for {path}: {e}") from e

        # A selector narrows the listing to its major version (path@v0 → v0.x.y)
        if selector:
            wanted = versions.major(selector)
            found = [v for v in found if versions.major(v) == wanted]

        return versions.sort_versions(found)

    def resolve_latest_version(self, module_ref: str) -> str:
        path, selector = versions.split_ref(module_ref)
        if selector and versions.is_canonical(selector):
            return module_ref

        available = self.module_versions(module_ref)
        if not available:
            raise CatalogError(f"no versions found for {module_ref}")
        return f"{path}@{available[-1]}"

    def fetch(self, concrete_ref: str) -> FetchResult:
        path, version = versions.split_ref(concrete_ref)
        if not versions.is_canonical(version):
            raise CatalogError(f"fetch requires a concrete version, got {concrete_ref!r}")
        target = self._module_dir(path) / version

        retrying = Retrying(
            stop=stop_after_attempt(self.retries),
            wait=wait_exponential(multiplier=self.base_wait),
            retry=retry_if_exception(_is_transient),
            sleep=self._sleep,
            before_sleep=_log_retry(concrete_ref),
            reraise=True,
        )
        try:
            retrying(_require_dir, target)
        except (FileNotFoundError, NotADirectoryError):
            raise CatalogError(f"module {concrete_ref} not found in catalog {self.root}")
        except OSError as e:
            raise CatalogError(
                f"fetching module {concrete_ref} after {self.retries} attempts: {e}"
            ) from e
        return FetchResult(source_dir=target)


def _require_dir(target: Path) -> None:
    # stat() raises where Path.is_dir() would quietly return False
    if not stat.S_ISDIR(target.stat().st_mode):
        raise NotADirectoryError(f"{target} is not a directory")


def _is_transient(error: BaseException) -> bool:
    """Missing modules are final; any other I/O error may clear on retry."""
    return isinstance(error, OSError) and not isinstance(
        error, (FileNotFoundError, NotADirectoryError)
    )


def _log_retry(concrete_ref: str) -> Callable[[RetryCallState], None]:
    def log(retry_state: RetryCallState) -> None:
        wait = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.debug(
            "Fetch of %s failed (attempt %d): %s; retrying in %.1fs",
            concrete_ref,
            retry_state.attempt_number,
            retry_state.outcome.exception() if retry_state.outcome else None,
            wait,
        )

    return log
