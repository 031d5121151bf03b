"""Scanner - discovers source files and runs every enabled rule over them."""
from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from pathlib import Path

from nextjs_mui_audit.config import AuditConfig
from nextjs_mui_audit.core.models import FileResult, Finding, ScanResult, ScanSummary
from nextjs_mui_audit.core.plugins import PluginHost
from nextjs_mui_audit.core.rules import RuleCatalog, build_catalog
from nextjs_mui_audit.errors import RuleExecutionError, ScanError
from nextjs_mui_audit.hook_types import FileProcessed, FileProcessing, ScanCompleted, ScanStarted

logger = logging.getLogger(__name__)


@dataclass
class _FileOutcome:
    path: str
    result: FileResult | None = None
    rule_errors: list[RuleExecutionError] = field(default_factory=list)
    error: str | None = None
    skipped: bool = False
    # Per-file hook snapshots, delivered during the path-ordered merge
    snapshots: tuple[FileProcessing | FileProcessed, ...] = ()


class Scanner:
    """Applies a rule catalog to a source tree under one configuration.

    The catalog and config are shared read-only between worker threads;
    each file is scanned independently and results are merged in path order.
    """

    def __init__(
        self,
        catalog: RuleCatalog | None = None,
        config: AuditConfig | None = None,
        plugins: PluginHost | None = None,
    ):
        self.plugins = plugins or PluginHost()
        self.catalog = catalog or build_catalog(self.plugins)
        self.config = config or AuditConfig()
        self._active_rules = [r for r in self.catalog if self.config.is_rule_enabled(r.id)]

    def discover(self, root: Path) -> list[str]:
        """Relative POSIX paths of included, non-ignored files under root, sorted."""
        root = Path(root)
        if not root.is_dir():
            raise ScanError(f"Scan root does not exist or is not a directory: {root}", path=str(root))

        def on_error(error: OSError):
            raise ScanError(f"Could not walk {error.filename}: {error.strerror}",
                            path=error.filename, cause=error)

        found = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            rel_dir = Path(dirpath).relative_to(root).as_posix()
            prefix = "" if rel_dir == "." else f"{rel_dir}/"
            # Prune ignored directories so node_modules and friends are never walked
            dirnames[:] = sorted(d for d in dirnames if not self.config.should_ignore(f"{prefix}{d}/"))
            for filename in filenames:
                rel = f"{prefix}{filename}"
                if self.config.should_include(rel) and not self.config.should_ignore(rel):
                    found.append(rel)
        return sorted(found)

    def scan(
        self,
        root: str | Path,
        paths: list[str] | None = None,
        stop_event: threading.Event | None = None,
    ) -> ScanResult:
        """Scan a project tree.

        Args:
            root: Project root; include/ignore globs are relative to it.
            paths: Explicit relative paths to scan instead of discovering files.
            stop_event: When set, no further files are started; the partial
                result is returned with ``stopped=True``.

        Raises:
            ScanError: Missing root, or an unreadable file without continue_on_error.
        """
        root = Path(root)
        if not root.is_dir():
            raise ScanError(f"Scan root does not exist or is not a directory: {root}", path=str(root))

        files = sorted(paths) if paths is not None else self.discover(root)
        logger.info(f"Scanning {len(files)} files under {root} with {len(self._active_rules)} rules")
        self.plugins.run_hook("before_scan", ScanStarted(
            root=str(root),
            total_files=len(files),
            rule_ids=tuple(r.id for r in self._active_rules),
        ))

        outcomes = self._scan_all(root, files, stop_event)

        result = ScanResult()
        for outcome in sorted(outcomes, key=lambda o: o.path):
            if outcome.skipped:
                result.stopped = True
                continue
            result.rule_errors.extend(outcome.rule_errors)
            for snapshot in outcome.snapshots:
                self.plugins.run_hook(snapshot.hook, snapshot)
            if outcome.error is not None:
                result.file_errors[outcome.path] = outcome.error
            elif outcome.result is not None:
                result.files[outcome.path] = outcome.result
        result.summary = ScanSummary.from_files(result.files.values())

        if result.stopped:
            logger.warning(f"Scan stopped early after {len(result.files)} of {len(files)} files")
        logger.info(
            f"Scan complete: {result.summary.total_issues} issues in {result.summary.total_files} files"
            f" ({len(result.rule_errors)} rule errors, {len(result.file_errors)} unreadable files)"
        )
        self.plugins.run_hook("after_scan", ScanCompleted(
            root=str(root),
            summary=result.summary.to_dict(),
            rule_errors=len(result.rule_errors),
            file_errors=len(result.file_errors),
            stopped=result.stopped,
        ))
        return result

    def _scan_all(self, root: Path, files: list[str], stop_event: threading.Event | None) -> list[_FileOutcome]:
        abort = threading.Event()

        def work(rel: str) -> _FileOutcome:
            if abort.is_set() or (stop_event is not None and stop_event.is_set()):
                return _FileOutcome(path=rel, skipped=True)
            return self._scan_file(root, rel)

        workers = max(1, self.config.max_workers)
        if workers == 1 or len(files) <= 1:
            return [work(rel) for rel in files]

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(work, rel) for rel in files]
            outcomes = []
            try:
                for future in futures:
                    outcomes.append(future.result())
            except BaseException:
                # Let queued files drain as no-ops before the error propagates
                abort.set()
                raise
        return outcomes

    def _scan_file(self, root: Path, rel: str) -> _FileOutcome:
        try:
            content = (root / rel).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            if not self.config.continue_on_error:
                raise ScanError(f"Could not read {rel}: {e}", path=rel, cause=e) from e
            logger.warning(f"Skipping unreadable file {rel}: {e}")
            return _FileOutcome(path=rel, error=f"{type(e).__name__}: {e}")

        content = self.plugins.process(rel, content)
        findings, rule_errors = self.scan_content(content, rel)
        file_result = FileResult(path=rel, findings=findings)

        snapshots = (
            FileProcessing(path=rel, content=content),
            FileProcessed(path=rel, score=file_result.score, findings=tuple(f.to_dict() for f in findings)),
        )
        return _FileOutcome(path=rel, result=file_result, rule_errors=rule_errors, snapshots=snapshots)

    def scan_content(self, content: str, path: str) -> tuple[list[Finding], list[RuleExecutionError]]:
        """Run every enabled, applicable rule on one file's content.

        Returns findings sorted by (line, column) and the rules that failed.
        """
        lines = content.splitlines()
        findings: list[Finding] = []
        errors: list[RuleExecutionError] = []

        for rule in self._active_rules:
            try:
                if not rule.applies_to(path):
                    continue
                produced = rule.evaluate(content, lines, path)
            except Exception as e:
                error = RuleExecutionError(rule.id, path, e)
                logger.error(error.message, exc_info=True)
                errors.append(error)
                continue

            for finding in produced:
                severity = self.config.get_rule_severity(rule.id, finding.severity)
                findings.append(replace(
                    finding,
                    rule=rule.id,
                    category=rule.category,
                    severity=severity,
                    file=path,
                ))

        findings.sort(key=lambda f: (f.line, f.column))
        return findings, errors


def scan(
    root_path: str | Path,
    config: AuditConfig | None = None,
    catalog: RuleCatalog | None = None,
    plugins: PluginHost | None = None,
    stop_event: threading.Event | None = None,
) -> ScanResult:
    """Scan a project tree with the given (or default) configuration."""
    return Scanner(catalog=catalog, config=config, plugins=plugins).scan(root_path, stop_event=stop_event)


def scan_content(content: str, path: str = "component.tsx", config: AuditConfig | None = None) -> list[Finding]:
    """Findings for a single in-memory file. Rule errors are logged and dropped."""
    findings, _ = Scanner(config=config).scan_content(content, path)
    return findings
