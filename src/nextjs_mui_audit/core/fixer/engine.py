"""Auto-fix engine - applies registered transforms to files with findings."""
from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
import threading
from collections.abc import Iterable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from nextjs_mui_audit.core.models import (
    AppliedFix,
    FileResult,
    Finding,
    FixResult,
    ProjectFixResult,
    ScanResult,
    SkippedFix,
)
from nextjs_mui_audit.core.rules import RuleCatalog
from nextjs_mui_audit.errors import AuditError, ConfigurationError, FixTargetMissing, UnsafeTransformError

from .transforms import ALREADY_FIXED, BUILTIN_TRANSFORMS, Transform, TransformOutcome, unsafe_reason

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"

MANUAL_INTERVENTION = "Manual intervention required"

IssueInput = Union[Finding, Mapping[str, Any]]


@dataclass
class _PathLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


def read_source(path: Path) -> str:
    # Decode bytes directly so CRLF line endings survive a rewrite
    return path.read_bytes().decode("utf-8")


def atomic_write(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, fsync, then os.replace."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content.encode("utf-8"))
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


class AutoFixer:
    """Rewrites source files to resolve fixable findings.

    Each fixable rule id maps to one transform. Issues for one file are
    grouped by rule in the order first supplied, and each rule's transform
    runs once over the output of the transforms before it.
    """

    def __init__(self, catalog: RuleCatalog | None = None):
        self.catalog = catalog
        self._fixers: dict[str, tuple[str, Transform]] = dict(BUILTIN_TRANSFORMS)
        # Held only while a fix on that path is in flight
        self._locks: dict[Path, _PathLock] = {}
        self._locks_guard = threading.Lock()

        if catalog is not None:
            for rule in catalog.fixable_rules():
                if rule.id not in self._fixers:
                    logger.debug(f"Rule {rule.id} is marked fixable but has no registered transform")

    def get_available_fixers(self) -> list[dict[str, str]]:
        return [
            {"ruleId": rule_id, "description": description}
            for rule_id, (description, _) in self._fixers.items()
        ]

    def can_fix(self, rule_id: str) -> bool:
        return rule_id in self._fixers

    def register_fixer(self, rule_id: str, description: str, transform: Transform) -> None:
        """Register a transform for a rule id. Each rule id gets exactly one."""
        if rule_id in self._fixers:
            raise ConfigurationError(f"A fixer is already registered for {rule_id}")
        if not callable(transform):
            raise ConfigurationError(f"Fixer for {rule_id} must be callable")
        if self.catalog is not None and rule_id not in self.catalog:
            raise ConfigurationError(f"Cannot register a fixer for unknown rule {rule_id}")
        self._fixers[rule_id] = (description, transform)

    @contextlib.contextmanager
    def _path_lock(self, path: Path) -> Iterator[None]:
        """Serialize fixes on one path; the entry is dropped when its last user leaves."""
        key = path.resolve()
        with self._locks_guard:
            entry = self._locks.setdefault(key, _PathLock())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]

    @property
    def locked_paths(self) -> list[Path]:
        with self._locks_guard:
            return list(self._locks)

    def fix_file(
        self,
        path: str | Path,
        issues: Iterable[IssueInput],
        dry_run: bool = False,
        backup: bool = True,
    ) -> FixResult:
        """
        Apply the fixes for one file's issues.

        Args:
            path: File to fix
            issues: Findings or issue dicts (only ``rule`` is required)
            dry_run: Compute the result without writing anything
            backup: Save the original to ``<path>.backup`` before overwriting

        Returns:
            FixResult; ``fixed_content`` is set even in dry-run mode

        Raises:
            FixTargetMissing: If the file does not exist
        """
        path = Path(path)
        if not path.is_file():
            raise FixTargetMissing(str(path))

        grouped: dict[str, list[Finding]] = {}
        for issue in issues:
            finding = Finding.coerce(issue)
            grouped.setdefault(finding.rule, []).append(finding)

        with self._path_lock(path):
            original = read_source(path)
            content = original
            result = FixResult(path=str(path), original_content=original)

            for rule_id, rule_issues in grouped.items():
                content = self._apply_rule(rule_id, rule_issues, content, result)

            result.fixed_content = content
            result.has_changes = content != original

            if result.has_changes and not dry_run:
                if backup:
                    backup_path = path.with_name(path.name + BACKUP_SUFFIX)
                    atomic_write(backup_path, original)
                    result.backup_path = str(backup_path)
                atomic_write(path, content)
                logger.info(f"Wrote {len(result.applied_fixes)} fixes to {path}")

        return result

    def _apply_rule(self, rule_id: str, issues: list[Finding], content: str, result: FixResult) -> str:
        fixer = self._fixers.get(rule_id)
        if fixer is None:
            result.skipped_fixes.extend(SkippedFix(rule_id, MANUAL_INTERVENTION) for _ in issues)
            return content

        description, transform = fixer
        try:
            outcome = transform(content, issues[0])
        except UnsafeTransformError as e:
            reason = unsafe_reason(e.message)
        except Exception as e:
            logger.warning(f"Fixer for {rule_id} failed on {result.path}: {e}", exc_info=True)
            reason = f"Fix failed: {e}"
        else:
            if isinstance(outcome, str):
                outcome = TransformOutcome(outcome)
            if outcome.content != content:
                for issue in issues:
                    skip = outcome.skip_reason_for(issue)
                    if skip is None:
                        result.applied_fixes.append(AppliedFix(rule_id, description))
                    else:
                        result.skipped_fixes.append(SkippedFix(rule_id, skip))
                return outcome.content
            reason = ALREADY_FIXED

        result.skipped_fixes.extend(SkippedFix(rule_id, reason) for _ in issues)
        return content

    def fix_project(
        self,
        scan_results: ScanResult | Mapping[str, Any],
        dry_run: bool = False,
        backup: bool = True,
        max_workers: int = 1,
        root: str | Path | None = None,
    ) -> ProjectFixResult:
        """
        Fix every file that has issues.

        A file that cannot be fixed (missing, unreadable) is recorded with
        ``error`` set and does not stop the remaining files.

        Args:
            scan_results: ScanResult, ``{"files": {path: {"issues": [...]}}}``
                or a plain ``{path: [issues]}`` mapping
            root: Directory relative paths are resolved against
        """
        targets = [(path, issues) for path, issues in _issues_by_path(scan_results) if issues]
        base = Path(root) if root is not None else None

        def work(item: tuple[str, list[IssueInput]]) -> FixResult:
            rel, issues = item
            target = base / rel if base is not None else Path(rel)
            try:
                file_result = self.fix_file(target, issues, dry_run=dry_run, backup=backup)
            except (AuditError, OSError, UnicodeDecodeError) as e:
                logger.warning(f"Could not fix {rel}: {e}")
                file_result = FixResult(path=rel, error=str(e))
            file_result.path = rel
            return file_result

        if max_workers > 1 and len(targets) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                file_results = list(pool.map(work, targets))
        else:
            file_results = [work(item) for item in targets]

        project = ProjectFixResult(
            total_files=len(targets),
            fixed_files=sum(1 for r in file_results if r.has_changes),
            total_fixes=sum(len(r.applied_fixes) for r in file_results),
            file_results=file_results,
        )
        logger.info(
            f"Fixed {project.fixed_files}/{project.total_files} files ({project.total_fixes} fixes)"
            + (" [dry run]" if dry_run else "")
        )
        return project

    def generate_fix_report(self, project: ProjectFixResult) -> str:
        return generate_fix_report(project)


def _issues_by_path(scan_results: ScanResult | Mapping[str, Any]) -> list[tuple[str, list[IssueInput]]]:
    if isinstance(scan_results, ScanResult):
        return [(path, list(fr.findings)) for path, fr in scan_results.files.items()]

    files = scan_results.get("files", scan_results) if isinstance(scan_results, Mapping) else {}
    pairs = []
    for path, entry in files.items():
        if isinstance(entry, FileResult):
            issues = list(entry.findings)
        elif isinstance(entry, Mapping):
            issues = list(entry.get("issues") or [])
        else:
            issues = list(entry or [])
        pairs.append((path, issues))
    return pairs


def generate_fix_report(project: ProjectFixResult) -> str:
    """Markdown summary of a project fix run."""
    lines = [
        "# Auto-Fix Report",
        "",
        "## Summary",
        "",
        f"- **Total Files Processed:** {project.total_files}",
        f"- **Files Fixed:** {project.fixed_files}",
        f"- **Files Skipped:** {project.skipped_files}",
        f"- **Total Fixes Applied:** {project.total_fixes}",
        "",
    ]

    fixed = [r for r in project.file_results if r.has_changes]
    if fixed:
        lines += ["## Fixed Files", ""]
        for result in fixed:
            lines += [f"### {result.path}", ""]
            lines.append("**Applied Fixes:**")
            lines += [f"- {fix.rule}: {fix.description}" for fix in result.applied_fixes]
            lines.append("")
            if result.skipped_fixes:
                lines.append("**Skipped Fixes:**")
                lines += [f"- {skip.rule}: {skip.reason}" for skip in result.skipped_fixes]
                lines.append("")

    skipped = [r for r in project.file_results if not r.has_changes]
    if skipped:
        lines += ["## Skipped Files", ""]
        for result in skipped:
            if result.error:
                reason = result.error
            elif result.skipped_fixes:
                reason = "; ".join(dict.fromkeys(skip.reason for skip in result.skipped_fixes))
            else:
                reason = "No changes needed"
            lines.append(f"- **{result.path}**: {reason}")
        lines.append("")

    return "\n".join(lines)
