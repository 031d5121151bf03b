"""End-to-end audit run: plugins, catalog, scan, grade and thresholds."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from nextjs_mui_audit.config import AuditConfig
from nextjs_mui_audit.core.grader import check_thresholds, grade
from nextjs_mui_audit.core.models import Grade, ScanResult
from nextjs_mui_audit.core.plugins import PluginHost
from nextjs_mui_audit.core.reporting import build_report
from nextjs_mui_audit.core.rules import RuleCatalog, build_catalog
from nextjs_mui_audit.core.scanner import Scanner
from nextjs_mui_audit.errors import ThresholdViolation

logger = logging.getLogger(__name__)


def load_plugin_host(config: AuditConfig) -> PluginHost:
    """Plugin host with every plugin the config names."""
    host = PluginHost(config.plugin_settings)
    if config.plugins:
        host.load_plugins(config.plugins, base_dir=config.base_dir)
    return host


@dataclass
class AuditRun:
    scan: ScanResult
    grade: Grade
    report: dict[str, Any]
    violations: list[ThresholdViolation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations


def run_audit(
    root: str | Path,
    config: AuditConfig,
    plugins: PluginHost | None = None,
    catalog: RuleCatalog | None = None,
    stop_event: threading.Event | None = None,
) -> AuditRun:
    """Scan and grade a project, and check it against the configured thresholds."""
    plugins = plugins if plugins is not None else load_plugin_host(config)
    catalog = catalog or build_catalog(plugins)

    scan_result = Scanner(catalog=catalog, config=config, plugins=plugins).scan(root, stop_event=stop_event)
    result = grade(scan_result, config, plugins)
    violations = check_thresholds(result, config)
    for violation in violations:
        logger.warning(f"Threshold violation ({violation.code}): {violation.message}")

    return AuditRun(
        scan=scan_result,
        grade=result,
        report=build_report(scan_result, result),
        violations=violations,
    )
