"""Validation result types for the consistency validator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ModuleStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"


class CheckStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class ValidateModuleResult:
    """Outcome for one module.

    Attributes:
        name: Module name within its category ("claude", "review/architecture").
        version: Version declared by the index entry ("" for orphans).
        status: PASS unless at least one issue was recorded.
        issues: Human-readable problems, in check order.
    """

    name: str
    version: str = ""
    status: ModuleStatus = ModuleStatus.PASS
    issues: List[str] = field(default_factory=list)

    def add_issue(self, issue: str) -> None:
        self.issues.append(issue)
        self.status = ModuleStatus.FAIL

    @property
    def failed(self) -> bool:
        return self.status == ModuleStatus.FAIL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "status": self.status.value,
            "issues": list(self.issues),
        }


@dataclass
class ValidateCatResult:
    """Results for one category: indexed modules in name order, then orphans."""

    name: str
    modules: List[ValidateModuleResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.modules)

    @property
    def failed(self) -> int:
        return sum(1 for m in self.modules if m.failed)

    @property
    def passed(self) -> int:
        return self.total - self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "total": self.total,
            "passed": self.passed,
            "failed": self.failed,
            "modules": [m.to_dict() for m in self.modules],
        }


@dataclass
class CheckResult:
    """One line of the index section ("Valid - v0.1.8", "Stale - ...")."""

    status: CheckStatus
    label: str
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "label": self.label, "message": self.message}


@dataclass
class IndexSection:
    """Outcome of validating the index module itself."""

    results: List[CheckResult] = field(default_factory=list)
    version: str = ""

    def add(self, status: CheckStatus, label: str, message: str = "") -> None:
        self.results.append(CheckResult(status, label, message))

    @property
    def fatal(self) -> bool:
        return any(r.status == CheckStatus.FAIL for r in self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "fatal": self.fatal,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class ValidationReport:
    """Complete result of a validation run."""

    repo_url: str = ""
    index: IndexSection = field(default_factory=IndexSection)
    categories: List[ValidateCatResult] = field(default_factory=list)

    @property
    def checked(self) -> int:
        return sum(c.total for c in self.categories)

    @property
    def passed(self) -> int:
        return sum(c.passed for c in self.categories)

    @property
    def failed(self) -> int:
        return sum(c.failed for c in self.categories)

    def has_failures(self) -> bool:
        """True if the index section is fatal or any module failed."""
        return self.index.fatal or self.failed > 0

    def category(self, name: str) -> Optional[ValidateCatResult]:
        for cat in self.categories:
            if cat.name == name:
                return cat
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for JSON serialization."""
        return {
            "repo_url": self.repo_url,
            "index": self.index.to_dict(),
            "categories": [c.to_dict() for c in self.categories],
            "checked": self.checked,
            "passed": self.passed,
            "failed": self.failed,
            "status": "FAIL" if self.has_failures() else "PASS",
        }
