"""
report.py - Rendering of ValidationReport as text, JSON or markdown.

Text layout (default):

    Index
      ✓ Valid - v0.1.8

    agents     2/2 OK
    roles      1/2 FAIL
      ✗ golang/assistant     v0.1.0
          index version v0.1.0 does not match latest published v0.2.0

    Checked: 4 modules  Pass: 3  Fail: 1

Verbose text lists every module of every category.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from .results import CheckStatus, IndexSection, ValidateCatResult, ValidateModuleResult, ValidationReport

STATUS_ICONS = {
    CheckStatus.PASS: "✓",
    CheckStatus.WARN: "⚠",
    CheckStatus.FAIL: "✗",
}


def render_index_section(section: IndexSection) -> List[str]:
    lines = ["Index"]
    for result in section.results:
        icon = STATUS_ICONS.get(result.status, "-")
        if result.message:
            lines.append(f"  {icon} {result.label} - {result.message}")
        else:
            lines.append(f"  {icon} {result.label}")
    lines.append("")
    return lines


def _module_lines(module: ValidateModuleResult) -> List[str]:
    icon = "✗" if module.failed else "✓"
    head = f"  {icon} {module.name:<20}"
    if module.version:
        head += f" {module.version}"
    lines = [head.rstrip()]
    lines.extend(f"      {issue}" for issue in module.issues)
    return lines


def render_category(cat: ValidateCatResult, verbose: bool = False) -> List[str]:
    lines: List[str] = []
    if verbose:
        lines.append(f"{cat.name} ({cat.total})")
        for module in cat.modules:
            lines.extend(_module_lines(module))
    elif cat.failed == 0:
        lines.append(f"{cat.name:<10} {cat.passed}/{cat.total} OK")
    else:
        lines.append(f"{cat.name:<10} {cat.passed}/{cat.total} FAIL")
        for module in cat.modules:
            if module.failed:
                lines.extend(_module_lines(module))
    lines.append("")
    return lines


def render_stats(report: ValidationReport) -> str:
    return f"Checked: {report.checked} modules  Pass: {report.passed}  Fail: {report.failed}"


def render_text(report: ValidationReport, verbose: bool = False) -> str:
    """Human-readable report."""
    lines = render_index_section(report.index)
    if report.categories:
        for cat in report.categories:
            lines.extend(render_category(cat, verbose))
        lines.append(render_stats(report))
    return "\n".join(lines)


def build_report_json(report: ValidationReport) -> Dict[str, Any]:
    """JSON-ready report with a timestamp."""
    data = report.to_dict()
    data["timestamp"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
    return data


def build_report_markdown(report: ValidationReport) -> str:
    """Markdown report: status, index section, failing modules per category."""
    lines: List[str] = []

    lines.append("# Asset Validation Report")
    lines.append("")
    lines.append(f"**Timestamp**: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}")
    lines.append(f"**Repository**: {report.repo_url or '-'}")
    lines.append(f"**Status**: {'FAILED' if report.has_failures() else 'PASSED'}")
    lines.append("")

    lines.append("## Index")
    lines.append("")
    for result in report.index.results:
        text = f"- **{result.label}** ({result.status.value})"
        if result.message:
            text += f": {result.message}"
        lines.append(text)
    lines.append("")

    for cat in report.categories:
        lines.append(f"## {cat.name} ({cat.passed}/{cat.total} passed)")
        lines.append("")
        failing = [m for m in cat.modules if m.failed]
        if not failing:
            lines.append("_No issues found._")
        for module in failing:
            version = f" `{module.version}`" if module.version else ""
            lines.append(f"### {module.name}{version}")
            lines.extend(f"- {issue}" for issue in module.issues)
            lines.append("")
        lines.append("")

    if report.categories:
        lines.append(f"**{render_stats(report)}**")

    return "\n".join(lines)
