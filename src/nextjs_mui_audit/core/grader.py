"""Grader - turns scan findings into category scores and a letter grade.

Pure and total: any well-formed input (including none at all) produces a
Grade, and adding a finding can never raise a score.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Union

from nextjs_mui_audit.config import AuditConfig
from nextjs_mui_audit.core.models import (
    Category,
    FileResult,
    Finding,
    Grade,
    GradeBreakdown,
    ScanResult,
    Severity,
    file_score,
)
from nextjs_mui_audit.core.plugins import PluginHost
from nextjs_mui_audit.errors import ThresholdViolation
from nextjs_mui_audit.hook_types import GradingCompleted, GradingStarted

logger = logging.getLogger(__name__)

GradeInput = Union[ScanResult, Mapping[str, Any], None]

LETTER_GRADES = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)


def letter_grade(score: float) -> str:
    for minimum, letter in LETTER_GRADES:
        if score >= minimum:
            return letter
    return "F"


def collect_findings(results: GradeInput) -> dict[str, list[Finding]]:
    """Normalize a ScanResult or its dict form to ``{path: [Finding]}``."""
    if results is None:
        return {}
    if isinstance(results, ScanResult):
        return {path: list(fr.findings) for path, fr in results.files.items()}

    files = results.get("files") or {}
    collected = {}
    for path, entry in files.items():
        if isinstance(entry, FileResult):
            issues = entry.findings
        elif isinstance(entry, Mapping):
            issues = entry.get("issues") or []
        else:
            issues = entry or []
        collected[path] = [Finding.coerce(issue) for issue in issues]
    return collected


def category_scores(files: Mapping[str, list[Finding]]) -> dict[str, int]:
    """Per category, the mean over all files of that file's penalty-adjusted score."""
    scores = {}
    for category in Category:
        if not files:
            scores[category.value] = 100
            continue
        total = sum(
            file_score(f for f in findings if f.category is category)
            for findings in files.values()
        )
        scores[category.value] = round(total / len(files))
    return scores


def overall_score(scores: Mapping[str, int], config: AuditConfig) -> int:
    """Weighted mean over categories with a positive configured weight."""
    weights = config.weighted_categories()
    total_weight = sum(weights.values())
    if total_weight <= 0:
        return 100
    weighted = sum(scores.get(name, 100) * weight for name, weight in weights.items())
    return round(weighted / total_weight)


def grade(
    results: GradeInput,
    config: AuditConfig | None = None,
    plugins: PluginHost | None = None,
) -> Grade:
    """Grade scan results.

    Args:
        results: ScanResult, its dict form (``{"files": {path: {"issues": [...]}}}``) or None.
        config: Supplies category weights (defaults apply when omitted).
        plugins: Receives before_grading / after_grading hooks.
    """
    config = config or AuditConfig()
    files = collect_findings(results)
    all_findings = [f for findings in files.values() for f in findings]

    if plugins is not None:
        plugins.run_hook("before_grading", GradingStarted(
            total_files=len(files), total_issues=len(all_findings),
        ))

    scores = category_scores(files)
    overall = overall_score(scores, config)

    file_scores = [file_score(findings) for findings in files.values()]
    average = round(sum(file_scores) / len(file_scores), 1) if file_scores else 100.0

    result = Grade(
        overall_score=overall,
        letter_grade=letter_grade(overall),
        category_scores=scores,
        critical_issues=sum(1 for f in all_findings if f.severity is Severity.ERROR),
        total_issues=len(all_findings),
        breakdown=GradeBreakdown(
            total_files=len(files),
            files_with_issues=sum(1 for findings in files.values() if findings),
            average_score=average,
        ),
    )
    logger.info(f"Grade {result.letter_grade} ({result.overall_score}/100), {result.critical_issues} critical issues")

    if plugins is not None:
        plugins.run_hook("after_grading", GradingCompleted(grade=result.to_dict()))
    return result


def get_top_issues(results: GradeInput, limit: int = 10) -> list[dict[str, Any]]:
    """Most frequent rules: by count, then severity, then rule id."""
    counts: dict[str, dict[str, Any]] = {}
    for findings in collect_findings(results).values():
        for finding in findings:
            entry = counts.setdefault(finding.rule, {
                "rule": finding.rule,
                "category": finding.category.value,
                "severity": finding.severity.value,
                "message": finding.message,
                "count": 0,
            })
            entry["count"] += 1

    ranked = sorted(
        counts.values(),
        key=lambda e: (-e["count"], -Severity.parse(e["severity"]).rank, e["rule"]),
    )
    return ranked[:limit]


def get_category_breakdown(results: GradeInput) -> dict[str, dict[str, Any]]:
    """Per category: total findings, counts by severity and number of files affected."""
    breakdown: dict[str, dict[str, Any]] = {}
    for path, findings in collect_findings(results).items():
        for finding in findings:
            entry = breakdown.setdefault(finding.category.value, {
                "total": 0,
                "bySeverity": {s.value: 0 for s in Severity},
                "files": set(),
            })
            entry["total"] += 1
            entry["bySeverity"][finding.severity.value] += 1
            entry["files"].add(path)

    for entry in breakdown.values():
        entry["fileCount"] = len(entry.pop("files"))
    return breakdown


def check_thresholds(result: Grade, config: AuditConfig) -> list[ThresholdViolation]:
    """Threshold violations for a grade; empty when the project passes."""
    violations = []
    if result.overall_score < config.min_score:
        violations.append(ThresholdViolation(
            f"Score {result.overall_score} is below the minimum of {config.min_score:g}",
            code="SCORE_TOO_LOW",
            details={"score": result.overall_score, "minScore": config.min_score},
        ))
    if config.fail_on_critical and result.critical_issues > 0:
        violations.append(ThresholdViolation(
            f"{result.critical_issues} critical issue(s) found",
            code="CRITICAL_ISSUES_FOUND",
            details={"criticalIssues": result.critical_issues},
        ))
    return violations
