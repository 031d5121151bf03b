"""Tests for grading, top issues and thresholds."""
import pytest

from nextjs_mui_audit.config import AuditConfig
from nextjs_mui_audit.core.grader import (
    check_thresholds,
    get_category_breakdown,
    get_top_issues,
    grade,
    letter_grade,
)
from nextjs_mui_audit.core.models import FileResult, Finding, ScanResult, ScanSummary
from nextjs_mui_audit.core.plugins import PluginHost


def finding(rule="mui/inline-styles", category="mui", severity="error", file="a.tsx") -> Finding:
    return Finding.from_dict({
        "rule": rule, "category": category, "severity": severity, "message": rule, "file": file,
    })


def scan_result(files: dict[str, list[Finding]]) -> ScanResult:
    results = {path: FileResult(path=path, findings=list(findings)) for path, findings in files.items()}
    return ScanResult(files=results, summary=ScanSummary.from_files(results.values()))


def test_grade_none_is_perfect():
    result = grade(None)
    assert result.overall_score == 100
    assert result.letter_grade == "A"
    assert result.critical_issues == 0
    assert result.total_issues == 0


def test_grade_empty_mapping_is_perfect():
    empty = {"files": {}, "summary": {"totalFiles": 0, "totalIssues": 0}}
    result = grade(empty)
    assert (result.overall_score, result.letter_grade, result.critical_issues) == (100, "A", 0)


@pytest.mark.parametrize("score, letter", [
    (100, "A"), (90, "A"), (89.9, "B"), (80, "B"), (79, "C"), (70, "C"), (69, "D"), (60, "D"), (59, "F"), (0, "F"),
])
def test_letter_grades(score, letter):
    assert letter_grade(score) == letter


def test_critical_issues_counts_errors():
    result = grade(scan_result({
        "a.tsx": [finding(), finding(severity="warning"), finding(severity="info")],
        "b.tsx": [finding(rule="security/unsafe-eval", category="security")],
    }))
    assert result.critical_issues == 2
    assert result.total_issues == 4
    assert result.breakdown.total_files == 2
    assert result.breakdown.files_with_issues == 2


def test_grading_is_monotonic():
    files = {
        "a.tsx": [finding(severity="warning")],
        "b.tsx": [],
        "c.tsx": [finding(rule="a11y/missing-alt", category="accessibility", severity="info")],
    }
    previous = grade(scan_result(files)).overall_score

    for category in ("mui", "nextjs", "accessibility", "security", "seo"):
        for path in files:
            files[path] = files[path] + [finding(rule=f"{category}/x", category=category, file=path)]
            current = grade(scan_result(files)).overall_score
            assert current <= previous
            assert 0 <= current <= 100
            previous = current


def test_score_never_negative():
    result = grade(scan_result({"a.tsx": [finding() for _ in range(50)]}))
    assert result.category_scores["mui"] == 0
    assert 0 <= result.overall_score <= 100
    assert result.letter_grade == letter_grade(result.overall_score)


def test_category_score_averages_over_all_files():
    # One file loses 20 points in mui; the other is clean
    result = grade(scan_result({"a.tsx": [finding(), finding()], "b.tsx": []}))
    assert result.category_scores["mui"] == 90


def test_unweighted_category_does_not_affect_overall():
    result = grade(scan_result({"app/layout.tsx": [finding(rule="seo/title-tag", category="seo")]}))
    assert result.category_scores["seo"] == 90
    assert result.overall_score == 100


def test_grade_accepts_dict_form():
    as_dict = scan_result({"a.tsx": [finding()]}).to_dict()
    assert grade(as_dict).to_dict() == grade(scan_result({"a.tsx": [finding()]})).to_dict()


def test_top_issues_ordering():
    results = scan_result({
        "a.tsx": [
            finding(rule="quality/console-usage", category="quality", severity="warning"),
            finding(rule="quality/console-usage", category="quality", severity="warning"),
            finding(rule="mui/theme-usage", severity="info"),
            finding(rule="mui/theme-usage", severity="info"),
            finding(rule="security/unsafe-eval", category="security"),
        ],
    })

    top = get_top_issues(results, limit=2)

    assert [t["rule"] for t in top] == ["quality/console-usage", "mui/theme-usage"]
    assert top[0]["count"] == 2


def test_category_breakdown():
    breakdown = get_category_breakdown(scan_result({
        "a.tsx": [finding(), finding(severity="warning")],
        "b.tsx": [finding()],
    }))
    assert breakdown["mui"]["total"] == 3
    assert breakdown["mui"]["bySeverity"] == {"error": 2, "warning": 1, "info": 0}
    assert breakdown["mui"]["fileCount"] == 2


def test_thresholds():
    config = AuditConfig.from_dict({"thresholds": {"minScore": 95, "failOnCritical": True}})
    result = grade(scan_result({"a.tsx": [finding() for _ in range(5)]}), config)

    codes = {v.code for v in check_thresholds(result, config)}
    assert codes == {"SCORE_TOO_LOW", "CRITICAL_ISSUES_FOUND"}

    relaxed = AuditConfig.from_dict({"thresholds": {"minScore": 0, "failOnCritical": False}})
    assert check_thresholds(result, relaxed) == []


def test_grading_hooks_receive_snapshots():
    seen = []
    host = PluginHost()
    host.register_plugin("recorder", {"hooks": {
        "beforeGrading": lambda snapshot: seen.append(snapshot),
        "after_grading": lambda snapshot: seen.append(snapshot),
    }})

    grade(scan_result({"a.tsx": [finding()]}), plugins=host)

    assert [s.hook for s in seen] == ["before_grading", "after_grading"]
    assert seen[0].total_issues == 1
    assert seen[1].grade["criticalIssues"] == 1
