"""Snapshot dataclasses passed to plugin lifecycle hooks.

Hooks observe the pipeline; they never steer it. Each snapshot is frozen
and carries copies, so a hook cannot change in-flight scan or grade state.

Each snapshot has:
- hook: the lifecycle point it was emitted at
- to_dict(): JSON-safe dict, for plugins that log or forward it
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

# Hook names, in pipeline order
HookName = Literal[
    "before_scan",
    "before_file",
    "after_file",
    "after_scan",
    "before_grading",
    "after_grading",
]

HOOK_NAMES: tuple[str, ...] = (
    "before_scan",
    "before_file",
    "after_file",
    "after_scan",
    "before_grading",
    "after_grading",
)

# camelCase spellings accepted from plugin definitions
HOOK_ALIASES = {
    "beforeScan": "before_scan",
    "beforeFile": "before_file",
    "afterFile": "after_file",
    "afterScan": "after_scan",
    "beforeGrading": "before_grading",
    "afterGrading": "after_grading",
}


@dataclass(frozen=True)
class ScanStarted:
    """Emitted once before any file is read."""
    root: str
    total_files: int
    rule_ids: tuple[str, ...]
    hook: HookName = "before_scan"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FileProcessing:
    """A file as the rules saw it, after processors have run. Delivered in path order."""
    path: str
    content: str
    hook: HookName = "before_file"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FileProcessed:
    """A scanned file and its findings. Delivered in path order."""
    path: str
    score: int
    findings: tuple[dict[str, Any], ...] = ()
    hook: HookName = "after_file"

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "score": self.score, "findings": list(self.findings), "hook": self.hook}


@dataclass(frozen=True)
class ScanCompleted:
    root: str
    summary: dict[str, Any] = field(default_factory=dict)
    rule_errors: int = 0
    file_errors: int = 0
    stopped: bool = False
    hook: HookName = "after_scan"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GradingStarted:
    total_files: int
    total_issues: int
    hook: HookName = "before_grading"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GradingCompleted:
    """Emitted with the final grade; ``grade`` is the Grade.to_dict() form."""
    grade: dict[str, Any]
    hook: HookName = "after_grading"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


HookSnapshot = ScanStarted | FileProcessing | FileProcessed | ScanCompleted | GradingStarted | GradingCompleted
