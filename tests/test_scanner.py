"""Tests for file discovery and scanning."""
import threading
from pathlib import Path

import pytest

from nextjs_mui_audit.config import AuditConfig
from nextjs_mui_audit.core.models import Severity
from nextjs_mui_audit.core.rules import StructuralRule, build_catalog
from nextjs_mui_audit.core.scanner import Scanner, scan
from nextjs_mui_audit.errors import ScanError

CLEAN = "export const answer = 42;\n"
INLINE_STYLE = "export const Card = () => <Box style={{ padding: 16 }} />;\n"


def write_file(root: Path, rel: str, content: str) -> Path:
    """Helper to write a fixture source file."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def make_config(root: Path, **overrides) -> AuditConfig:
    return AuditConfig.from_dict(overrides, base_dir=root)


def test_discover_respects_include_and_ignore(tmp_path):
    write_file(tmp_path, "src/components/Card.tsx", CLEAN)
    write_file(tmp_path, "app/page.jsx", CLEAN)
    write_file(tmp_path, "src/node_modules/lib/index.js", CLEAN)
    write_file(tmp_path, "scripts/build.ts", CLEAN)
    write_file(tmp_path, "src/styles.css", "body {}")

    config = make_config(tmp_path, ignore=["node_modules"])
    files = Scanner(config=config).discover(tmp_path)

    assert files == ["app/page.jsx", "src/components/Card.tsx"]


def test_missing_root_raises(tmp_path):
    with pytest.raises(ScanError, match="does not exist"):
        scan(tmp_path / "missing")


def test_clean_file_scores_100(tmp_path):
    write_file(tmp_path, "src/lib/answer.ts", CLEAN)

    result = scan(tmp_path, make_config(tmp_path))

    file_result = result.files["src/lib/answer.ts"]
    assert file_result.findings == []
    assert file_result.score == 100
    assert result.summary.total_files == 1
    assert result.summary.total_issues == 0


def test_findings_carry_rule_metadata(tmp_path):
    write_file(tmp_path, "src/components/Card.tsx", INLINE_STYLE)

    result = scan(tmp_path, make_config(tmp_path))

    [finding] = [f for f in result.files["src/components/Card.tsx"].findings if f.rule == "mui/inline-styles"]
    assert finding.file == "src/components/Card.tsx"
    assert finding.severity is Severity.ERROR
    assert finding.category.value == "mui"
    assert result.summary.issues_by_category["mui"] >= 1


def test_findings_sorted_by_location(tmp_path):
    content = (
        "'use client'\n"
        "export const Card = () => (\n"
        "  <div onClick={() => console.log('x')}>\n"
        "    <img src=\"/a.png\" />\n"
        "  </div>\n"
        ");\n"
    )
    write_file(tmp_path, "src/components/Card.jsx", content)

    findings = scan(tmp_path, make_config(tmp_path)).files["src/components/Card.jsx"].findings

    locations = [(f.line, f.column) for f in findings]
    assert locations == sorted(locations)
    assert len(findings) > 3


def test_severity_override_and_disabled_rules(tmp_path):
    write_file(tmp_path, "src/components/Card.tsx", INLINE_STYLE + '<img src="/a.png" alt="A" />\n')
    config = make_config(tmp_path, rules={"mui/inline-styles": "info", "next/image-usage": "off"})

    findings = scan(tmp_path, config).files["src/components/Card.tsx"].findings
    by_rule = {f.rule: f for f in findings}

    assert by_rule["mui/inline-styles"].severity is Severity.INFO
    assert "next/image-usage" not in by_rule


def test_parallel_scan_matches_sequential(tmp_path):
    for i in range(12):
        write_file(tmp_path, f"src/components/C{i:02d}.tsx", INLINE_STYLE if i % 2 else CLEAN)

    sequential = scan(tmp_path, make_config(tmp_path, maxWorkers=1))
    parallel = scan(tmp_path, make_config(tmp_path, maxWorkers=4))

    assert list(parallel.files) == sorted(parallel.files)
    assert parallel.to_dict() == sequential.to_dict()


def test_failing_rule_is_isolated(tmp_path):
    write_file(tmp_path, "src/components/Card.tsx", INLINE_STYLE)
    write_file(tmp_path, "src/components/Other.tsx", CLEAN)

    def explode(content, lines, path):
        raise RuntimeError("boom")

    catalog = build_catalog().extend([StructuralRule(
        id="custom/explode", category="quality", severity="warning", message="never", check=explode,
    )])

    result = Scanner(catalog=catalog, config=make_config(tmp_path)).scan(tmp_path)

    assert len(result.rule_errors) == 2
    assert {e.rule_id for e in result.rule_errors} == {"custom/explode"}
    assert result.rule_errors[0].code == "RULE_FAILED"
    # Every other rule still ran
    rules = {f.rule for f in result.files["src/components/Card.tsx"].findings}
    assert "mui/inline-styles" in rules


def test_unreadable_file_aborts_by_default(tmp_path):
    write_file(tmp_path, "src/components/Card.tsx", CLEAN)
    (tmp_path / "src" / "components" / "Broken.tsx").write_bytes(b"\xff\xfe\x00 not utf-8")

    with pytest.raises(ScanError, match="Broken.tsx"):
        scan(tmp_path, make_config(tmp_path))


def test_continue_on_error_records_unreadable_file(tmp_path):
    write_file(tmp_path, "src/components/Card.tsx", CLEAN)
    (tmp_path / "src" / "components" / "Broken.tsx").write_bytes(b"\xff\xfe\x00 not utf-8")

    result = scan(tmp_path, make_config(tmp_path, continueOnError=True))

    assert "src/components/Broken.tsx" in result.file_errors
    assert "src/components/Card.tsx" in result.files
    assert "src/components/Broken.tsx" not in result.files


def test_stop_event_returns_partial_result(tmp_path):
    write_file(tmp_path, "src/components/Card.tsx", CLEAN)
    stop = threading.Event()
    stop.set()

    result = scan(tmp_path, make_config(tmp_path), stop_event=stop)

    assert result.stopped is True
    assert result.files == {}


def test_scan_explicit_paths(tmp_path):
    write_file(tmp_path, "src/components/Card.tsx", INLINE_STYLE)
    write_file(tmp_path, "src/components/Other.tsx", CLEAN)

    result = Scanner(config=make_config(tmp_path)).scan(tmp_path, paths=["src/components/Other.tsx"])

    assert list(result.files) == ["src/components/Other.tsx"]
