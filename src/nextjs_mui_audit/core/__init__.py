"""Core audit modules: rules, scanning, grading and auto-fixing."""
from .models import (
    AppliedFix,
    Category,
    FileResult,
    Finding,
    FixResult,
    Grade,
    ProjectFixResult,
    ScanResult,
    ScanSummary,
    Severity,
    SkippedFix,
)

__all__ = [
    "AppliedFix",
    "Category",
    "FileResult",
    "Finding",
    "FixResult",
    "Grade",
    "ProjectFixResult",
    "ScanResult",
    "ScanSummary",
    "Severity",
    "SkippedFix",
]
