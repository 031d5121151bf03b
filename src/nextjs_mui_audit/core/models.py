"""Data models for scanning, grading and fixing."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from nextjs_mui_audit.errors import ConfigurationError, RuleExecutionError


class Severity(Enum):
    """Severity levels for findings."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def parse(cls, value: "Severity | str") -> "Severity":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ConfigurationError(
                f"Invalid severity {value!r}. Valid severities: {valid}"
            ) from None

    @property
    def penalty(self) -> int:
        return SEVERITY_PENALTY[self]

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


class Category(Enum):
    """Closed set of rule categories."""
    NEXTJS = "nextjs"
    MUI = "mui"
    ACCESSIBILITY = "accessibility"
    RESPONSIVE = "responsive"
    PERFORMANCE = "performance"
    SECURITY = "security"
    QUALITY = "quality"
    TESTING = "testing"
    SEO = "seo"

    @classmethod
    def parse(cls, value: "Category | str") -> "Category":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = ", ".join(c.value for c in cls)
            raise ConfigurationError(
                f"Invalid category {value!r}. Valid categories: {valid}"
            ) from None


# Score deduction per finding. Must stay strictly ordered error > warning > info.
SEVERITY_PENALTY = {
    Severity.ERROR: 10,
    Severity.WARNING: 5,
    Severity.INFO: 2,
}

SEVERITY_RANK = {
    Severity.ERROR: 3,
    Severity.WARNING: 2,
    Severity.INFO: 1,
}


@dataclass(frozen=True)
class Finding:
    """A single rule violation located in one file."""
    rule: str
    category: Category
    severity: Severity
    message: str
    line: int = 1
    column: int = 1
    excerpt: str = ""
    suggestion: str = ""
    file: str = ""

    @property
    def exact_location(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule": self.rule,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "excerpt": self.excerpt,
            "suggestion": self.suggestion,
            "file": self.file,
            "exactLocation": self.exact_location,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Finding":
        """Build a finding from an issue mapping.

        Only ``rule`` is required; externally supplied issue lists for the
        fixer often carry nothing but a rule id and a location.
        """
        return cls(
            rule=data["rule"],
            category=Category.parse(data.get("category", "quality")),
            severity=Severity.parse(data.get("severity", "warning")),
            message=data.get("message", ""),
            line=int(data.get("line", 1)),
            column=int(data.get("column", 1)),
            excerpt=data.get("excerpt", ""),
            suggestion=data.get("suggestion", ""),
            file=data.get("file", ""),
        )

    @classmethod
    def coerce(cls, issue: "Finding | dict[str, Any]") -> "Finding":
        return issue if isinstance(issue, cls) else cls.from_dict(issue)


def file_score(findings: Iterable[Finding]) -> int:
    """100 minus the severity penalties of the findings, floored at 0."""
    penalty = sum(f.severity.penalty for f in findings)
    return max(0, 100 - penalty)


@dataclass
class FileResult:
    """Findings and score for one scanned file."""
    path: str
    findings: list[Finding] = field(default_factory=list)

    @property
    def score(self) -> int:
        return file_score(self.findings)

    @property
    def issues(self) -> list[Finding]:
        return self.findings

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "score": self.score,
            "issues": [f.to_dict() for f in self.findings],
        }


@dataclass
class ScanSummary:
    """Aggregate counts over all scanned files."""
    total_files: int = 0
    total_issues: int = 0
    issues_by_category: dict[str, int] = field(default_factory=dict)
    issues_by_severity: dict[str, int] = field(
        default_factory=lambda: {s.value: 0 for s in Severity}
    )

    @classmethod
    def from_files(cls, files: Iterable[FileResult]) -> "ScanSummary":
        summary = cls()
        for file_result in files:
            summary.total_files += 1
            for finding in file_result.findings:
                summary.total_issues += 1
                summary.issues_by_severity[finding.severity.value] += 1
                category = finding.category.value
                summary.issues_by_category[category] = (
                    summary.issues_by_category.get(category, 0) + 1
                )
        return summary

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFiles": self.total_files,
            "totalIssues": self.total_issues,
            "issuesByCategory": dict(self.issues_by_category),
            "issuesBySeverity": dict(self.issues_by_severity),
        }


@dataclass
class ScanResult:
    """Output of a scan: the sole contract consumed by the grader and fixer."""
    files: dict[str, FileResult] = field(default_factory=dict)
    summary: ScanSummary = field(default_factory=ScanSummary)
    rule_errors: list[RuleExecutionError] = field(default_factory=list)
    file_errors: dict[str, str] = field(default_factory=dict)
    stopped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": {path: fr.to_dict() for path, fr in self.files.items()},
            "summary": self.summary.to_dict(),
            "ruleErrors": [e.to_dict() for e in self.rule_errors],
            "fileErrors": dict(self.file_errors),
            "stopped": self.stopped,
        }


@dataclass
class GradeBreakdown:
    total_files: int = 0
    files_with_issues: int = 0
    average_score: float = 100.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFiles": self.total_files,
            "filesWithIssues": self.files_with_issues,
            "averageScore": self.average_score,
        }


@dataclass
class Grade:
    """Overall score, letter grade and per-category scores."""
    overall_score: int = 100
    letter_grade: str = "A"
    category_scores: dict[str, int] = field(default_factory=dict)
    critical_issues: int = 0
    total_issues: int = 0
    breakdown: GradeBreakdown = field(default_factory=GradeBreakdown)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overallScore": self.overall_score,
            "letterGrade": self.letter_grade,
            "categoryScores": dict(self.category_scores),
            "criticalIssues": self.critical_issues,
            "totalIssues": self.total_issues,
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass(frozen=True)
class AppliedFix:
    rule: str
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"rule": self.rule, "description": self.description}


@dataclass(frozen=True)
class SkippedFix:
    rule: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"rule": self.rule, "reason": self.reason}


@dataclass
class FixResult:
    """Outcome of one fix_file() call."""
    path: str
    has_changes: bool = False
    applied_fixes: list[AppliedFix] = field(default_factory=list)
    skipped_fixes: list[SkippedFix] = field(default_factory=list)
    fixed_content: str | None = None
    original_content: str | None = None
    backup_path: str | None = None
    error: str | None = None  # only set by fix_project when the file failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "hasChanges": self.has_changes,
            "appliedFixes": [f.to_dict() for f in self.applied_fixes],
            "skippedFixes": [f.to_dict() for f in self.skipped_fixes],
            "backupPath": self.backup_path,
            "error": self.error,
        }


@dataclass
class ProjectFixResult:
    """Aggregate of fix results across a project."""
    total_files: int = 0
    fixed_files: int = 0
    total_fixes: int = 0
    file_results: list[FixResult] = field(default_factory=list)

    @property
    def skipped_files(self) -> int:
        return self.total_files - self.fixed_files

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalFiles": self.total_files,
            "fixedFiles": self.fixed_files,
            "skippedFiles": self.skipped_files,
            "totalFixes": self.total_fixes,
            "fileResults": [r.to_dict() for r in self.file_results],
        }
