"""audit_project / fix_project / get_audit_rules tool implementations."""
import asyncio
import logging
from pathlib import Path

from nextjs_mui_audit.config import AuditConfig
from nextjs_mui_audit.core.audit import load_plugin_host, run_audit
from nextjs_mui_audit.core.fixer import AutoFixer
from nextjs_mui_audit.core.reporting import write_reports
from nextjs_mui_audit.core.rules import build_catalog
from nextjs_mui_audit.core.scanner import Scanner
from nextjs_mui_audit.errors import AuditError

logger = logging.getLogger(__name__)


def resolve_project(project_path: str, config: AuditConfig) -> Path:
    path = Path(project_path).expanduser()
    if not path.is_absolute():
        path = config.base_dir / path
    return path.resolve()


def register(mcp, config: AuditConfig):
    """Register audit tools with MCP server."""

    @mcp.tool()
    async def audit_project(
        project_path: str,
        write_files: bool = False,
        min_score: float | None = None
    ) -> dict:
        """
        Audit a Next.js + MUI project and grade it.

        Scans JS/TS/JSX/TSX sources with every enabled rule and grades the
        result per category (mui, nextjs, accessibility, performance,
        security, quality, responsive, testing, seo).

        Args:
            project_path: Project root (absolute or relative to the server's working dir)
            write_files: Also write the configured report files (default: False)
            min_score: Override the minimum passing score (0-100)

        Returns:
            Dictionary with:
            - summary (dict): overallScore, letterGrade, totalIssues, criticalIssues, ...
            - categoryScores (dict): score per category
            - issues (dict): bySeverity, byCategory, topIssues
            - files (dict): per-file score and issues
            - passed (bool): Whether every threshold was met
            - violations (list): Threshold violations, if any
            - reports (list): Written report paths (if write_files=True)

        Example:
            {
                "project_path": "~/code/storefront",
                "min_score": 80
            }
        """
        root = resolve_project(project_path, config)
        if not root.is_dir():
            return {"error": f"Project not found: {root}"}

        overrides = {"thresholds": {"minScore": min_score}} if min_score is not None else None
        logger.info(f"Auditing {root} (write_files={write_files})")

        try:
            project_config = AuditConfig.load(root=root, overrides=overrides)
            run = await asyncio.to_thread(run_audit, root, project_config)

            response = dict(run.report)
            response["passed"] = run.passed
            response["violations"] = [v.to_dict() for v in run.violations]
            if write_files:
                paths = await asyncio.to_thread(write_reports, run.report, project_config)
                response["reports"] = [str(p) for p in paths]

            logger.info(
                f"Audit complete: {run.grade.letter_grade} ({run.grade.overall_score}/100), "
                f"{run.grade.total_issues} issues"
            )
            return response

        except AuditError as e:
            logger.error(f"Audit failed: {e.message}")
            return e.to_dict()
        except Exception as e:
            logger.error(f"Audit failed: {e}", exc_info=True)
            return {"error": str(e)}

    @mcp.tool()
    async def fix_project(
        project_path: str,
        dry_run: bool = True,
        backup: bool = True,
        rules: list[str] | None = None
    ) -> dict:
        """
        Auto-fix fixable issues in a Next.js + MUI project.

        Fixable rules: mui/inline-styles, next/image-usage, a11y/missing-alt,
        mui/theme-token-enforcement, mui/responsive-design,
        next/client-directive. Other issues are reported as skipped.

        Args:
            project_path: Project root (absolute or relative to the server's working dir)
            dry_run: Compute fixes without writing files (default: True)
            backup: Keep <file>.backup copies of rewritten files (default: True)
            rules: Only fix issues from these rule ids (default: all)

        Returns:
            Dictionary with:
            - totalFiles, fixedFiles, totalFixes (int)
            - fileResults (list): per-file applied and skipped fixes
            - report (str): Markdown fix report
        """
        root = resolve_project(project_path, config)
        if not root.is_dir():
            return {"error": f"Project not found: {root}"}

        logger.info(f"Fixing {root} (dry_run={dry_run}, rules={rules})")

        try:
            project_config = AuditConfig.load(root=root)
            plugins = load_plugin_host(project_config)
            catalog = build_catalog(plugins)
            scanner = Scanner(catalog=catalog, config=project_config, plugins=plugins)
            scan_result = await asyncio.to_thread(scanner.scan, root)

            targets = {
                path: [f for f in fr.findings if not rules or f.rule in rules]
                for path, fr in scan_result.files.items()
            }

            fixer = AutoFixer(catalog)
            project = await asyncio.to_thread(
                fixer.fix_project, targets,
                dry_run=dry_run, backup=backup,
                max_workers=project_config.max_workers, root=root,
            )

            logger.info(f"Fix complete: {project.fixed_files}/{project.total_files} files")

            response = project.to_dict()
            response["report"] = fixer.generate_fix_report(project)
            return response

        except AuditError as e:
            logger.error(f"Fix failed: {e.message}")
            return e.to_dict()
        except Exception as e:
            logger.error(f"Fix failed: {e}", exc_info=True)
            return {"error": str(e)}

    @mcp.tool()
    async def get_audit_rules(category: str | None = None) -> dict:
        """
        Get list of available audit rules.

        Args:
            category: Only rules in this category (default: all)

        Returns:
            Dictionary with:
            - rules (list): id, kind, category, severity, message, suggestion, fixable, source
            - fixers (list): ruleId and description of each registered auto-fix

        Example response:
            {
                "rules": [
                    {"id": "mui/inline-styles", "category": "mui", "severity": "error", ...},
                    ...
                ]
            }
        """
        catalog = build_catalog(load_plugin_host(config))
        rules = [rule.describe() for rule in catalog]
        if category:
            rules = [r for r in rules if r["category"] == category]
        return {"rules": rules, "fixers": AutoFixer(catalog).get_available_fixers()}
