"""
versions.py - Semantic version comparison for catalog modules.

Module versions use the ``v`` prefixed semantic version form published by
the catalog (``v0.1.2``, ``v1.0.0-rc.1``). Shorthands ``v1`` and ``v1.2``
are accepted as valid and expand to ``v1.0.0`` / ``v1.2.0`` when made
canonical. Build metadata (``+build``) is accepted but ignored for
ordering and dropped from the canonical form.

Module references have the form ``<module path>@<version>`` where the
version may be a major-only selector (``@v0``).

Usage:
    from assetry.registry.versions import compare, latest, split_ref

    latest(["v0.1.0", "v0.10.0", "v0.2.0"])  # "v0.10.0"
    split_ref("github.com/acme/assets/index@v0")  # ("github.com/acme/assets/index", "v0")
"""

from __future__ import annotations

import functools
import re
from typing import Iterable, List, Optional, Tuple

_SEMVER_RE = re.compile(
    r"^v(?P<major>0|[1-9]\d*)"
    r"(?:\.(?P<minor>0|[1-9]\d*)"
    r"(?:\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r")?)?$"
)


def _parse(version: str) -> Optional[Tuple[int, int, int, Tuple[str, ...]]]:
    match = _SEMVER_RE.match(version or "")
    if not match:
        return None
    pre = match.group("pre")
    if pre:
        # Numeric prerelease identifiers must not carry leading zeros
        for ident in pre.split("."):
            if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
                return None
    return (
        int(match.group("major")),
        int(match.group("minor") or 0),
        int(match.group("patch") or 0),
        tuple(pre.split(".")) if pre else (),
    )


def is_valid(version: str) -> bool:
    """Return True if *version* is a valid ``v`` prefixed semantic version."""
    return _parse(version) is not None


def canonical(version: str) -> str:
    """Return the canonical ``vMAJOR.MINOR.PATCH[-pre]`` form, or "" if invalid."""
    parsed = _parse(version)
    if parsed is None:
        return ""
    major, minor, patch, pre = parsed
    text = f"v{major}.{minor}.{patch}"
    if pre:
        text += "-" + ".".join(pre)
    return text


def is_canonical(version: str) -> bool:
    """Return True if *version* is already in canonical form."""
    return bool(version) and canonical(version) == version


def major(version: str) -> str:
    """Return the major selector (``v1``) of *version*, or "" if invalid."""
    parsed = _parse(version)
    if parsed is None:
        return ""
    return f"v{parsed[0]}"


def _compare_prerelease(a: Tuple[str, ...], b: Tuple[str, ...]) -> int:
    # A version without prerelease ranks above any prerelease of the same core
    if not a and not b:
        return 0
    if not a:
        return 1
    if not b:
        return -1
    for left, right in zip(a, b):
        if left == right:
            continue
        left_num, right_num = left.isdigit(), right.isdigit()
        if left_num and right_num:
            return -1 if int(left) < int(right) else 1
        if left_num:
            return -1
        if right_num:
            return 1
        return -1 if left < right else 1
    if len(a) == len(b):
        return 0
    return -1 if len(a) < len(b) else 1


def compare(a: str, b: str) -> int:
    """Compare two versions, returning -1, 0 or 1.

    Invalid versions compare equal to each other and lower than any valid
    version, so sorting a mixed list is still deterministic.
    """
    pa, pb = _parse(a), _parse(b)
    if pa is None and pb is None:
        return 0
    if pa is None:
        return -1
    if pb is None:
        return 1
    if pa[:3] != pb[:3]:
        return -1 if pa[:3] < pb[:3] else 1
    return _compare_prerelease(pa[3], pb[3])


def sort_versions(versions: Iterable[str]) -> List[str]:
    """Return *versions* sorted ascending by semantic version."""
    return sorted(versions, key=functools.cmp_to_key(compare))


def latest(versions: Iterable[str]) -> str:
    """Return the highest version in *versions*, or "" when empty."""
    ordered = sort_versions(versions)
    return ordered[-1] if ordered else ""


# =============================================================================
# Module references
# =============================================================================


def split_ref(ref: str) -> Tuple[str, str]:
    """Split ``path@version`` into ``(path, version)``; version may be ""."""
    idx = ref.rfind("@")
    if idx == -1:
        return ref, ""
    return ref[:idx], ref[idx + 1:]


def module_of(ref: str) -> str:
    """Return the module identity (path without version suffix)."""
    return split_ref(ref)[0]


def version_of(ref: str) -> str:
    """Return the version suffix of *ref*, or "" when absent."""
    return split_ref(ref)[1]


def with_version(ref: str, version: str) -> str:
    """Return *ref* with its version suffix replaced by *version*."""
    return f"{module_of(ref)}@{version}"
