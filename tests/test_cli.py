"""Tests for the command-line interface."""
import json
from pathlib import Path

import pytest

from nextjs_mui_audit.cli import build_parser, main

CLEAN = "export const answer = 42;\n"
INLINE_STYLE = "export const Card = () => <Box style={{ padding: 16 }} />;\n"


def write_file(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_audit_clean_project_passes(tmp_path, capsys):
    write_file(tmp_path, "src/lib/answer.ts", CLEAN)

    code = main(["audit", str(tmp_path), "--json", "--no-write"])

    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["summary"]["overallScore"] == 100
    assert not (tmp_path / "audit").exists()


def test_audit_fails_on_critical_issues(tmp_path, capsys):
    write_file(tmp_path, "src/components/Card.tsx", INLINE_STYLE)

    code = main(["audit", str(tmp_path), "--json", "--no-write", "--min-score", "0"])

    assert code == 1
    assert "critical issue" in capsys.readouterr().err


def test_audit_writes_reports(tmp_path):
    write_file(tmp_path, "src/lib/answer.ts", CLEAN)
    out = tmp_path / "reports"

    code = main(["audit", str(tmp_path), "-f", "markdown", "-o", str(out)])

    assert code == 0
    assert (out / "AUDIT_REPORT.md").is_file()
    assert not (out / "audit-report.json").exists()


def test_audit_invalid_config_exits_1(tmp_path, capsys):
    write_file(tmp_path, "audit.config.yaml", "thresholds:\n  minScore: 150\n")

    code = main(["audit", str(tmp_path), "--no-write"])

    assert code == 1
    assert "between 0 and 100" in capsys.readouterr().err


def test_fix_dry_run(tmp_path):
    path = write_file(tmp_path, "src/components/Card.tsx", INLINE_STYLE)

    code = main(["fix", str(tmp_path), "--dry-run", "--rules", "mui/inline-styles"])

    assert code == 0
    assert path.read_text(encoding="utf-8") == INLINE_STYLE


def test_fix_writes_and_reports(tmp_path):
    path = write_file(tmp_path, "src/components/Card.tsx", INLINE_STYLE)
    report = tmp_path / "fix-report.md"

    code = main(["fix", str(tmp_path), "--no-backup", "--rules", "mui/inline-styles", "--report", str(report)])

    assert code == 0
    assert "sx={{" in path.read_text(encoding="utf-8")
    assert not (tmp_path / "src/components/Card.tsx.backup").exists()
    assert report.read_text(encoding="utf-8").startswith("# Auto-Fix Report")


def test_rules_listing(capsys):
    code = main(["rules", "--fixable"])

    assert code == 0
    out = capsys.readouterr().out
    assert "Rules (6)" in out
    assert "mui/inline-styles" in out


def test_rules_unknown_category(capsys):
    assert main(["rules", "--category", "image"]) == 1
    assert "Invalid category" in capsys.readouterr().err


def test_init(tmp_path, capsys):
    target = tmp_path / "audit.config.yaml"

    assert main(["init", str(target)]) == 0
    assert target.is_file()

    assert main(["init", str(target)]) == 1
    assert "already exists" in capsys.readouterr().err

    assert main(["init", str(target), "--force"]) == 0
