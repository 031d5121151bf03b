"""CLI for nextjs-mui-audit.

Provides terminal access to auditing and auto-fixing without MCP.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nextjs_mui_audit.config import VALID_FORMATS, VERSION, AuditConfig, write_default_config
from nextjs_mui_audit.errors import AuditError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nextjs-mui-audit",
        description="Audit Next.js + MUI projects for quality, accessibility and performance issues"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {VERSION}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # audit command
    a = subparsers.add_parser("audit", help="Scan and grade a project")
    a.add_argument("root", type=Path, nargs="?", default=Path("."), help="Project root (default: .)")
    a.add_argument("-c", "--config", type=Path, help="Config file (default: auto-detect in root)")
    a.add_argument(
        "-f", "--format", action="append", choices=VALID_FORMATS, dest="formats",
        help="Report format; repeat for several (default: from config)"
    )
    a.add_argument("-o", "--output", type=Path, help="Report directory (default: from config)")
    a.add_argument("--min-score", type=float, help="Minimum passing score (0-100)")
    a.add_argument(
        "--continue-on-error", action="store_true",
        help="Record unreadable files instead of aborting"
    )
    a.add_argument("-w", "--workers", type=int, help="Worker threads (default: from config)")
    a.add_argument(
        "--json", action="store_true",
        help="Print the JSON report to stdout instead of summary tables"
    )
    a.add_argument(
        "--no-write", action="store_true",
        help="Don't write report files"
    )

    # fix command
    f = subparsers.add_parser("fix", help="Auto-fix fixable issues")
    f.add_argument("root", type=Path, nargs="?", default=Path("."), help="Project root (default: .)")
    f.add_argument("-c", "--config", type=Path, help="Config file (default: auto-detect in root)")
    f.add_argument(
        "--dry-run", action="store_true",
        help="Show what would change without writing"
    )
    f.add_argument(
        "--no-backup", action="store_true",
        help="Don't keep <file>.backup copies"
    )
    f.add_argument(
        "--rules", nargs="+", metavar="RULE_ID",
        help="Only fix issues from these rules"
    )
    f.add_argument("--report", type=Path, help="Write the markdown fix report to this path")

    # rules command
    r = subparsers.add_parser("rules", help="List available rules")
    r.add_argument("--category", help="Only rules in this category")
    r.add_argument(
        "--fixable", action="store_true",
        help="Only rules with an auto-fix"
    )
    r.add_argument("-c", "--config", type=Path, help="Config file whose plugins add rules")

    # init command
    i = subparsers.add_parser("init", help="Write a starter audit.config.yaml")
    i.add_argument("path", type=Path, nargs="?", default=Path("audit.config.yaml"))
    i.add_argument(
        "--force", action="store_true",
        help="Overwrite an existing config file"
    )

    return parser


def main(argv=None) -> int:
    """Main entry point for the CLI. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Logs go to stderr so --json output stays clean
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    commands = {
        "audit": audit_command,
        "fix": fix_command,
        "rules": rules_command,
        "init": init_command,
    }
    try:
        return commands[args.command](args)
    except AuditError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        logger.debug(f"{e.code}: {e.details}")
        return 1


def _load_config(args, overrides=None) -> AuditConfig:
    root = getattr(args, "root", None) or Path(".")
    return AuditConfig.load(config_path=args.config, root=root, overrides=overrides)


def audit_command(args) -> int:
    """Execute the audit command."""
    from nextjs_mui_audit.core.audit import run_audit
    from nextjs_mui_audit.core.reporting import summary_tables, write_reports

    overrides = {}
    if args.min_score is not None:
        overrides["thresholds"] = {"minScore": args.min_score}
    if args.formats:
        overrides["output"] = {"formats": args.formats}
    if args.output:
        overrides.setdefault("output", {})["directory"] = str(args.output)
    if args.continue_on_error:
        overrides["continueOnError"] = True
    if args.workers is not None:
        overrides["maxWorkers"] = args.workers

    config = _load_config(args, overrides)
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    run = run_audit(args.root, config)

    if args.json:
        print(json.dumps(run.report, indent=2))
    else:
        console = Console()
        for table in summary_tables(run.report):
            console.print(table)

    if not args.no_write:
        for path in write_reports(run.report, config):
            print(f"Report: {path}", file=sys.stderr)

    for violation in run.violations:
        print(f"FAILED: {violation.message}", file=sys.stderr)
    return 0 if run.passed else 1


def fix_command(args) -> int:
    """Execute the fix command."""
    from nextjs_mui_audit.core.audit import load_plugin_host
    from nextjs_mui_audit.core.fixer import AutoFixer
    from nextjs_mui_audit.core.rules import build_catalog
    from nextjs_mui_audit.core.scanner import Scanner

    config = _load_config(args)
    plugins = load_plugin_host(config)
    catalog = build_catalog(plugins)
    scan_result = Scanner(catalog=catalog, config=config, plugins=plugins).scan(args.root)

    targets = {}
    for path, file_result in scan_result.files.items():
        issues = [f for f in file_result.findings if not args.rules or f.rule in args.rules]
        if issues:
            targets[path] = issues

    fixer = AutoFixer(catalog)
    project = fixer.fix_project(
        targets,
        dry_run=args.dry_run,
        backup=not args.no_backup,
        max_workers=config.max_workers,
        root=args.root,
    )

    report = fixer.generate_fix_report(project)
    if args.report:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        args.report.write_text(report, encoding="utf-8")
        print(f"Report: {args.report}", file=sys.stderr)

    table = Table(title="Auto-Fix" + (" (dry run)" if args.dry_run else ""))
    table.add_column("File")
    table.add_column("Applied", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Status")
    for result in project.file_results:
        if result.error:
            status = f"[red]{escape(result.error)}[/]"
        elif result.has_changes:
            status = "[green]would fix[/]" if args.dry_run else "[green]fixed[/]"
        else:
            status = "unchanged"
        table.add_row(escape(result.path), str(len(result.applied_fixes)), str(len(result.skipped_fixes)), status)

    console = Console()
    console.print(table)
    console.print(
        f"{project.fixed_files}/{project.total_files} files, {project.total_fixes} fixes applied"
    )
    return 1 if any(r.error for r in project.file_results) else 0


def rules_command(args) -> int:
    """Execute the rules command."""
    from nextjs_mui_audit.core.audit import load_plugin_host
    from nextjs_mui_audit.core.models import Category
    from nextjs_mui_audit.core.rules import build_catalog

    plugins = None
    if args.config:
        plugins = load_plugin_host(_load_config(args))
    catalog = build_catalog(plugins)

    category = Category.parse(args.category) if args.category else None
    rules = [
        rule for rule in catalog
        if (category is None or rule.category is category) and (not args.fixable or rule.fixable)
    ]

    table = Table(title=f"Rules ({len(rules)})")
    table.add_column("Rule", no_wrap=True)
    table.add_column("Category")
    table.add_column("Severity")
    table.add_column("Fixable")
    table.add_column("Message")
    for rule in rules:
        table.add_row(
            rule.id, rule.category.value, rule.severity.value,
            "yes" if rule.fixable else "", rule.message
        )
    Console().print(table)
    return 0


def init_command(args) -> int:
    """Execute the init command."""
    path = write_default_config(args.path, overwrite=args.force)
    print(f"Wrote {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
