"""Audit report rendering: JSON document, markdown and HTML.

The JSON document is the single source; markdown and HTML are rendered
from it so every number agrees across formats.
"""
from __future__ import annotations

import io
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nextjs_mui_audit.config import VERSION, AuditConfig
from nextjs_mui_audit.core.grader import get_category_breakdown, get_top_issues
from nextjs_mui_audit.core.models import Grade, ScanResult, Severity

logger = logging.getLogger(__name__)

REPORT_FILES = {
    "json": "audit-report.json",
    "markdown": "AUDIT_REPORT.md",
    "html": "audit-report.html",
}

GRADE_STYLES = {"A": "bold green", "B": "green", "C": "yellow", "D": "dark_orange", "F": "bold red"}
SEVERITY_STYLES = {"error": "red", "warning": "yellow", "info": "cyan"}


def build_report(scan_result: ScanResult, grade: Grade, top_limit: int = 10) -> dict[str, Any]:
    """Assemble the JSON report document."""
    summary = scan_result.summary
    return {
        "generatedAt": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "version": VERSION,
        "summary": {
            "overallScore": grade.overall_score,
            "letterGrade": grade.letter_grade,
            "totalIssues": grade.total_issues,
            "criticalIssues": grade.critical_issues,
            "totalFiles": grade.breakdown.total_files,
            "filesWithIssues": grade.breakdown.files_with_issues,
            "averageScore": grade.breakdown.average_score,
        },
        "categoryScores": dict(grade.category_scores),
        "issues": {
            "bySeverity": dict(summary.issues_by_severity),
            "byCategory": get_category_breakdown(scan_result),
            "topIssues": get_top_issues(scan_result, top_limit),
        },
        "files": {path: fr.to_dict() for path, fr in scan_result.files.items()},
        "errors": {
            "rules": [e.to_dict() for e in scan_result.rule_errors],
            "files": dict(scan_result.file_errors),
        },
        "stopped": scan_result.stopped,
    }


def render_markdown(report: dict[str, Any]) -> str:
    summary = report["summary"]
    lines = [
        "# Audit Report",
        "",
        f"Generated {report.get('generatedAt', '')}",
        "",
        "## Summary",
        "",
        f"- **Overall Score:** {summary['overallScore']}/100 ({summary['letterGrade']})",
        f"- **Total Issues:** {summary['totalIssues']}",
        f"- **Critical Issues:** {summary['criticalIssues']}",
        f"- **Files Scanned:** {summary['totalFiles']}",
        f"- **Files With Issues:** {summary['filesWithIssues']}",
        f"- **Average File Score:** {summary['averageScore']}",
        "",
        "## Category Scores",
        "",
        "| Category | Score |",
        "|----------|-------|",
    ]
    lines += [f"| {name} | {score} |" for name, score in report["categoryScores"].items()]
    lines.append("")

    by_severity = report["issues"]["bySeverity"]
    lines += ["## Issues by Severity", ""]
    lines += [f"- **{severity}:** {by_severity.get(severity, 0)}" for severity in (s.value for s in Severity)]
    lines.append("")

    top = report["issues"]["topIssues"]
    if top:
        lines += ["## Top Issues", "", "| Rule | Severity | Count | Message |", "|------|----------|-------|---------|"]
        lines += [f"| {t['rule']} | {t['severity']} | {t['count']} | {t['message']} |" for t in top]
        lines.append("")

    files_with_issues = {p: f for p, f in report["files"].items() if f["issues"]}
    if files_with_issues:
        lines += ["## Files", ""]
        for path, entry in files_with_issues.items():
            lines += [f"### {path} (score {entry['score']})", ""]
            for issue in entry["issues"]:
                lines.append(
                    f"- `{issue['line']}:{issue['column']}` **{issue['severity']}** "
                    f"{issue['rule']}: {issue['message']}"
                )
                if issue.get("suggestion"):
                    lines.append(f"  - Suggestion: {issue['suggestion']}")
            lines.append("")

    errors = report.get("errors") or {}
    if errors.get("rules") or errors.get("files"):
        lines += ["## Errors", ""]
        lines += [f"- {e['message']}" for e in errors.get("rules", [])]
        lines += [f"- Could not read {path}: {message}" for path, message in errors.get("files", {}).items()]
        lines.append("")

    return "\n".join(lines)


def summary_tables(report: dict[str, Any]) -> list[Table]:
    """Rich tables for the report summary, category scores and top issues."""
    summary = report["summary"]
    grade_style = GRADE_STYLES.get(summary["letterGrade"], "")

    overview = Table(title="Audit Summary", show_header=False)
    overview.add_column("Metric", style="bold")
    overview.add_column("Value")
    overview.add_row("Overall score", f"[{grade_style}]{summary['overallScore']}/100 ({summary['letterGrade']})[/]")
    overview.add_row("Total issues", str(summary["totalIssues"]))
    overview.add_row("Critical issues", str(summary["criticalIssues"]))
    overview.add_row("Files scanned", str(summary["totalFiles"]))
    overview.add_row("Files with issues", str(summary["filesWithIssues"]))

    categories = Table(title="Category Scores")
    categories.add_column("Category")
    categories.add_column("Score", justify="right")
    for name, score in report["categoryScores"].items():
        categories.add_row(name, str(score))

    tables = [overview, categories]
    top = report["issues"]["topIssues"]
    if top:
        issues = Table(title="Top Issues")
        issues.add_column("Rule")
        issues.add_column("Severity")
        issues.add_column("Count", justify="right")
        for item in top:
            style = SEVERITY_STYLES.get(item["severity"], "")
            issues.add_row(item["rule"], f"[{style}]{item['severity']}[/]", str(item["count"]))
        tables.append(issues)
    return tables


def render_html(report: dict[str, Any]) -> str:
    console = Console(record=True, width=120, file=io.StringIO())
    for table in summary_tables(report):
        console.print(table)
    for path, entry in report["files"].items():
        if not entry["issues"]:
            continue
        table = Table(title=escape(f"{path} (score {entry['score']})"))
        table.add_column("Line", justify="right")
        table.add_column("Severity")
        table.add_column("Rule")
        table.add_column("Message")
        for issue in entry["issues"]:
            style = SEVERITY_STYLES.get(issue["severity"], "")
            table.add_row(str(issue["line"]), f"[{style}]{issue['severity']}[/]", issue["rule"], escape(issue["message"]))
        console.print(table)
    return console.export_html(inline_styles=True)


def write_reports(report: dict[str, Any], config: AuditConfig, output_dir: Path | None = None) -> list[Path]:
    """Write each configured format to the output directory."""
    output_dir = Path(output_dir) if output_dir else config.output_path()
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for fmt in config.formats:
        path = output_dir / REPORT_FILES[fmt]
        if fmt == "json":
            text = json.dumps(report, indent=2)
        elif fmt == "markdown":
            text = render_markdown(report)
        else:
            text = render_html(report)
        path.write_text(text, encoding="utf-8")
        written.append(path)
        logger.info(f"Wrote {fmt} report to {path}")
    return written
