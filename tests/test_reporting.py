"""Tests for report building and rendering."""
import json
from pathlib import Path

from nextjs_mui_audit.config import VERSION, AuditConfig
from nextjs_mui_audit.core.audit import run_audit
from nextjs_mui_audit.core.reporting import (
    REPORT_FILES,
    build_report,
    render_html,
    render_markdown,
    summary_tables,
    write_reports,
)

COMPONENT = (
    "export const Card = () => (\n"
    "  <Box style={{ padding: 16 }}>\n"
    "    <img src=\"/a.png\" />\n"
    "  </Box>\n"
    ");\n"
)


def make_project(root: Path) -> AuditConfig:
    """Helper to create a one-component project and its config."""
    path = root / "src" / "components" / "Card.tsx"
    path.parent.mkdir(parents=True)
    path.write_text(COMPONENT, encoding="utf-8")
    (root / "src" / "lib.ts").write_text("export const a = 1;\n", encoding="utf-8")
    return AuditConfig.from_dict({"output": {"formats": ["json", "markdown", "html"]}}, base_dir=root)


def test_report_numbers_agree(tmp_path):
    config = make_project(tmp_path)
    run = run_audit(tmp_path, config)
    report = run.report

    summary = report["summary"]
    assert report["version"] == VERSION
    assert summary["totalFiles"] == 2
    assert summary["filesWithIssues"] == 1
    assert summary["totalIssues"] == run.scan.summary.total_issues
    assert summary["criticalIssues"] == report["issues"]["bySeverity"]["error"]
    assert sum(c["total"] for c in report["issues"]["byCategory"].values()) == summary["totalIssues"]
    assert report["files"]["src/lib.ts"]["score"] == 100
    assert report["stopped"] is False


def test_report_is_json_serializable(tmp_path):
    run = run_audit(tmp_path, make_project(tmp_path))
    assert json.loads(json.dumps(run.report))["summary"] == run.report["summary"]


def test_markdown_rendering(tmp_path):
    run = run_audit(tmp_path, make_project(tmp_path))
    markdown = render_markdown(run.report)

    assert markdown.startswith("# Audit Report")
    assert f"- **Overall Score:** {run.grade.overall_score}/100 ({run.grade.letter_grade})" in markdown
    assert "### src/components/Card.tsx" in markdown
    assert "mui/inline-styles" in markdown
    # Clean files are left out of the per-file section
    assert "### src/lib.ts" not in markdown


def test_summary_tables(tmp_path):
    run = run_audit(tmp_path, make_project(tmp_path))
    titles = [table.title for table in summary_tables(run.report)]
    assert titles == ["Audit Summary", "Category Scores", "Top Issues"]


def test_html_rendering_escapes_markup(tmp_path):
    run = run_audit(tmp_path, make_project(tmp_path))
    report = dict(run.report)
    report["files"] = {"src/x.tsx": {
        "score": 95,
        "issues": [{"line": 1, "severity": "warning", "rule": "custom/x", "message": "[bold]literal[/bold]"}],
    }}

    html = render_html(report)

    assert "<html" in html.lower()
    assert "Audit Summary" in html
    assert "[bold]literal[/bold]" in html


def test_write_reports(tmp_path):
    config = make_project(tmp_path)
    run = run_audit(tmp_path, config)

    written = write_reports(run.report, config)

    assert [p.name for p in written] == [REPORT_FILES[f] for f in ("json", "markdown", "html")]
    assert all(p.parent == tmp_path / "audit" for p in written)
    data = json.loads((tmp_path / "audit" / "audit-report.json").read_text(encoding="utf-8"))
    assert data["summary"]["overallScore"] == run.grade.overall_score


def test_errors_section(tmp_path):
    config = make_project(tmp_path)
    config.continue_on_error = True
    (tmp_path / "src" / "broken.tsx").write_bytes(b"\xff\xfe")

    run = run_audit(tmp_path, config)

    assert "src/broken.tsx" in run.report["errors"]["files"]
    assert "Could not read src/broken.tsx" in render_markdown(run.report)


def test_build_report_on_empty_project(tmp_path):
    config = AuditConfig.from_dict({}, base_dir=tmp_path)
    run = run_audit(tmp_path, config)
    report = build_report(run.scan, run.grade)

    assert report["summary"]["overallScore"] == 100
    assert report["summary"]["letterGrade"] == "A"
    assert report["issues"]["topIssues"] == []
    assert run.passed
