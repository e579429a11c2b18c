"""
assetry/validator - Catalog consistency validation.

- git: GitRepository subprocess wrapper
- results: per-module, per-category and report result types
- consistency: ConsistencyValidator (tags vs published vs index, orphans)
- report: text, JSON and markdown rendering
"""

from .consistency import ConsistencyValidator, ValidatorPreconditionError
from .git import GitCommandError, GitRepository
from .results import ModuleStatus, ValidateCatResult, ValidateModuleResult, ValidationReport

__all__ = [
    "ConsistencyValidator",
    "ValidatorPreconditionError",
    "GitCommandError",
    "GitRepository",
    "ModuleStatus",
    "ValidateCatResult",
    "ValidateModuleResult",
    "ValidationReport",
]
