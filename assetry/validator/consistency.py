"""
consistency.py - Catalog consistency validator.

Cross-checks three independently updated records of every indexed asset:

    git tags        "<category>/<name>/vX.Y.Z" in the assets repository
    published       versions the catalog serves for the asset's module
    index version   the ``version`` field of the asset's index entry

Checks per indexed asset (all applicable issues are accumulated):

    1. index version differs from the latest published version
    2. latest published version has no git tag
    3. a git tag was never published
    4. content under <category>/<name> changed since the latest tag, when
       that tag is also the latest published version

Every category directory is also walked for modules (directories holding
``module.yaml``; recursion stops at the first module) with no index entry.

Repository preconditions are checked once, before any per-asset work, and
raise ValidatorPreconditionError. Catalog errors while checking assets are
fatal too: CatalogError propagates out of run().

Usage:
    from assetry.validator.consistency import ConsistencyValidator

    validator = ConsistencyValidator(client, settings.index_module, cache_dir())
    report = validator.run(progress=lambda done, total: ...)
    if report.has_failures():
        ...
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from ..registry import versions
from ..registry.client import CatalogClient, CatalogError
from ..registry.index import Category, Index, IndexEntry, IndexLoadError, load_index
from .git import GitCommandError, GitRepository, git_available
from .results import (
    CheckStatus,
    IndexSection,
    ValidateCatResult,
    ValidateModuleResult,
    ValidationReport,
)

logger = logging.getLogger(__name__)

MODULE_MARKER = "module.yaml"
INDEX_TAG_PREFIX = "index/"
ORPHAN_ISSUE = "module exists in filesystem but has no index entry"
DEFAULT_BRANCH = "main"

ProgressCallback = Callable[[int, int], None]


class ValidatorPreconditionError(Exception):
    """Raised when the repository or configuration is unfit for validation."""

    pass


# =============================================================================
# Helpers
# =============================================================================


def derive_repo_url(index_module: str) -> str:
    """Repository URL for an index module path.

    "github.com/acme/assets/index@v0" -> "https://github.com/acme/assets"

    Raises:
        ValidatorPreconditionError: If the path does not end with "/index".
    """
    path = versions.module_of(index_module)
    if not path.endswith("/index"):
        raise ValidatorPreconditionError(
            f"validation requires an index path ending with /index (got {path!r}); "
            "custom subpaths are not supported"
        )
    return "https://" + path[: -len("/index")]


def cache_dir_name(repo_url: str) -> str:
    """Filesystem-safe clone directory name ("owner-repo")."""
    path = repo_url
    for scheme in ("https://", "http://", "file://"):
        if path.startswith(scheme):
            path = path[len(scheme):]
            break
    parts = [p for p in path.strip("/").split("/") if p]
    if len(parts) >= 2:
        return f"{parts[-2]}-{parts[-1]}"
    if len(parts) == 1:
        return parts[0]
    return "assets-cache"


def tag_prefix(category: Category, name: str) -> str:
    return f"{Category(category).value}/{name}/"


def tag_versions(tags: Sequence[str], prefix: str) -> List[str]:
    """Valid versions of tags starting with *prefix*, ascending."""
    found = [t[len(prefix):] for t in tags if t.startswith(prefix)]
    return versions.sort_versions(v for v in found if versions.is_valid(v))


def latest_tag_version(tags: Sequence[str], prefix: str) -> str:
    found = tag_versions(tags, prefix)
    return found[-1] if found else ""


def find_fs_modules(category_dir: Path) -> List[str]:
    """Module directories under *category_dir*, relative, "/"-joined, sorted.

    A directory containing ``module.yaml`` is a module; its subdirectories
    are not searched.
    """
    modules: List[str] = []

    def walk(directory: Path, rel: str) -> None:
        try:
            children = sorted(p for p in directory.iterdir() if p.is_dir())
        except OSError as e:
            logger.debug("Cannot read %s: %s", directory, e)
            return
        for child in children:
            if child.name.startswith("."):
                continue
            child_rel = f"{rel}/{child.name}" if rel else child.name
            if (child / MODULE_MARKER).is_file():
                modules.append(child_rel)
                continue
            walk(child, child_rel)

    if Path(category_dir).is_dir():
        walk(Path(category_dir), "")
    return sorted(modules)


# =============================================================================
# Validator
# =============================================================================


class ConsistencyValidator:
    """Read-only audit of catalog, index and git tags."""

    def __init__(
        self,
        client: CatalogClient,
        index_module: str,
        cache_root: Path,
        branch: str = DEFAULT_BRANCH,
        repo_url: Optional[str] = None,
    ):
        """
        Args:
            client: Catalog client.
            index_module: Configured index module reference.
            cache_root: Directory that holds the repository clone.
            branch: Branch the clone must be on.
            repo_url: Clone URL; derived from *index_module* when omitted.
        """
        self.client = client
        self.index_module = index_module
        self.cache_root = Path(cache_root)
        self.branch = branch
        self._repo_url = repo_url
        self.repo: Optional[GitRepository] = None

    @property
    def repo_url(self) -> str:
        if self._repo_url is None:
            self._repo_url = derive_repo_url(self.index_module)
        return self._repo_url

    @property
    def clone_dir(self) -> Path:
        return self.cache_root / cache_dir_name(self.repo_url)

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def prepare(self) -> List[str]:
        """Check preconditions, sync the clone and return its tags.

        Raises:
            ValidatorPreconditionError: On any precondition failure.
        """
        if not git_available():
            raise ValidatorPreconditionError("git not found in PATH: install git and retry")

        url = self.repo_url
        try:
            repo = self._ensure_repo(url)
            branch = repo.current_branch()
            if branch != self.branch:
                raise ValidatorPreconditionError(f"expected branch {self.branch}, got {branch!r}")
            if not repo.is_clean():
                raise ValidatorPreconditionError("repository has uncommitted changes")
            repo.fetch_tags()
            tags = repo.list_tags()
        except GitCommandError as e:
            raise ValidatorPreconditionError(str(e)) from e

        self.repo = repo
        logger.debug("Repository %s ready at %s with %d tags", url, repo.path, len(tags))
        return tags

    def _ensure_repo(self, url: str) -> GitRepository:
        clone_dir = self.clone_dir
        repo = GitRepository(clone_dir)
        if repo.is_repository:
            repo.checkout(self.branch)
            repo.pull()
            return repo

        if clone_dir.parent != self.cache_root or clone_dir.name in ("", ".", ".."):
            raise ValidatorPreconditionError(f"refusing to remove unsafe cache path: {clone_dir}")
        if clone_dir.exists():
            logger.debug("Removing stale clone directory %s", clone_dir)
            try:
                shutil.rmtree(clone_dir)
            except OSError as e:
                raise ValidatorPreconditionError(f"clearing stale cache directory: {e}") from e
        try:
            self.cache_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ValidatorPreconditionError(f"creating cache directory: {e}") from e
        return GitRepository.clone(url, clone_dir)

    # -------------------------------------------------------------------------
    # Index section
    # -------------------------------------------------------------------------

    def validate_index(self, tags: Sequence[str]) -> Tuple[IndexSection, Optional[Index]]:
        """Fetch and load the index.

        Returns:
            The section outcome and the loaded index. The index is None when
            the section is fatal or the index is empty.
        """
        section = IndexSection()

        mismatch = self._check_pinned_version()
        if mismatch:
            section.add(CheckStatus.FAIL, "Version mismatch", mismatch)
            return section, None

        try:
            resolved = self.client.resolve_latest_version(self.index_module)
        except CatalogError as e:
            logger.debug("Index resolve failed: %s", e)
            section.add(CheckStatus.FAIL, "Unreachable", "cannot resolve index version from registry")
            return section, None

        try:
            fetched = self.client.fetch(resolved)
        except CatalogError as e:
            section.add(CheckStatus.FAIL, "Unreachable", f"cannot fetch index module: {e}")
            return section, None

        try:
            index = load_index(fetched.source_dir)
        except IndexLoadError as e:
            section.add(CheckStatus.FAIL, "Corrupt", f"index failed to load: {e}")
            return section, None

        resolved_version = versions.version_of(resolved)
        if not versions.is_canonical(resolved_version):
            resolved_version = ""
        section.version = resolved_version

        stale = False
        latest_tag = latest_tag_version(tags, INDEX_TAG_PREFIX)
        if latest_tag and resolved_version and versions.compare(resolved_version, latest_tag) < 0:
            stale = True
            section.add(
                CheckStatus.WARN,
                "Stale",
                f"registry has {resolved_version} but latest git tag is {latest_tag}",
            )

        if index.entry_count() == 0:
            section.add(CheckStatus.WARN, "Empty", "index contains no entries")
            return section, None

        if not stale:
            section.add(CheckStatus.PASS, "Valid", resolved_version)
        return section, index

    def _check_pinned_version(self) -> str:
        """Problem text if the index module pins a version that does not exist."""
        pinned = versions.version_of(self.index_module)
        if not versions.is_canonical(pinned):
            return ""
        try:
            available = self.client.module_versions(self.index_module)
        except CatalogError as e:
            logger.debug("Cannot list index versions, deferring to resolve: %s", e)
            return ""
        if pinned in available:
            return ""
        return f"version {pinned} not found in registry (available: {', '.join(available)})"

    # -------------------------------------------------------------------------
    # Per-asset checks
    # -------------------------------------------------------------------------

    def validate_module(
        self,
        category: Category,
        name: str,
        entry: IndexEntry,
        tags: Sequence[str],
    ) -> ValidateModuleResult:
        """Run checks 1-4 for one indexed asset.

        Raises:
            CatalogError: If the catalog cannot list the module's versions.
        """
        result = ValidateModuleResult(name=name, version=entry.version)
        prefix = tag_prefix(category, name)
        tagged = tag_versions(tags, prefix)
        tagged_set = set(tagged)

        published = versions.sort_versions(self.client.module_versions(entry.module))
        published_set = set(published)
        latest_published = published[-1] if published else ""

        if entry.version and latest_published and entry.version != latest_published:
            result.add_issue(
                f"index version {entry.version} does not match latest published {latest_published}"
            )

        if latest_published and latest_published not in tagged_set:
            result.add_issue(
                f"published version {latest_published} has no git tag {prefix}{latest_published}"
            )

        for version in tagged:
            if version not in published_set:
                result.add_issue(f"git tag {prefix}{version} was never published to registry")

        latest_tag = tagged[-1] if tagged else ""
        if latest_tag and latest_tag == latest_published:
            self._check_staleness(result, f"{prefix}{latest_tag}", f"{Category(category).value}/{name}")

        return result

    def _check_staleness(self, result: ValidateModuleResult, tag: str, path: str) -> None:
        if self.repo is None:
            result.add_issue("staleness check failed: repository not prepared")
            return
        try:
            changed = self.repo.diff_names(tag, path)
        except GitCommandError as e:
            result.add_issue(f"staleness check failed: {e}")
            return
        if changed:
            result.add_issue(f"content changed since tag {tag}")

    def validate_modules(
        self,
        index: Index,
        tags: Sequence[str],
        progress: Optional[ProgressCallback] = None,
    ) -> List[ValidateCatResult]:
        """Validate every indexed asset, then report orphans per category.

        *progress* is called as ``progress(done, total)`` after each indexed
        asset; orphans are not counted.
        """
        total = index.entry_count()
        done = 0
        results: List[ValidateCatResult] = []

        for category, entries in index.items():
            cat_result = ValidateCatResult(name=category.value)
            for name in sorted(entries):
                cat_result.modules.append(self.validate_module(category, name, entries[name], tags))
                done += 1
                if progress is not None:
                    progress(done, total)

            if self.repo is not None:
                for fs_name in find_fs_modules(self.repo.path / category.value):
                    if fs_name not in entries:
                        orphan = ValidateModuleResult(name=fs_name)
                        orphan.add_issue(ORPHAN_ISSUE)
                        cat_result.modules.append(orphan)

            results.append(cat_result)
        return results

    def run(self, progress: Optional[ProgressCallback] = None) -> ValidationReport:
        """Run the full validation.

        Raises:
            ValidatorPreconditionError: Repository preconditions failed.
            CatalogError: The catalog failed while checking assets.
        """
        tags = self.prepare()
        report = ValidationReport(repo_url=self.repo_url)

        report.index, index = self.validate_index(tags)
        if report.index.fatal or index is None:
            return report

        report.categories = self.validate_modules(index, tags, progress)
        logger.debug("Validation finished: %d checked, %d failed", report.checked, report.failed)
        return report
