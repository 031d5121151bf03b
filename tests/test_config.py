"""Tests for config loading, validation and queries."""
import json
from pathlib import Path

import pytest
import yaml

from nextjs_mui_audit.config import AuditConfig, find_config_file, write_default_config
from nextjs_mui_audit.core.models import Severity
from nextjs_mui_audit.errors import ConfigurationError


def write_yaml(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_defaults_validate_cleanly():
    config = AuditConfig.from_dict({})
    assert config.validate() == []
    assert config.min_score == 85
    assert config.fail_on_critical is True


def test_min_score_out_of_range_is_rejected():
    config = AuditConfig.from_dict({"thresholds": {"minScore": 150}})
    with pytest.raises(ConfigurationError) as exc_info:
        config.validate()
    assert "between 0 and 100" in str(exc_info.value)


def test_weights_not_summing_to_100_warn():
    # Defaults sum to 100; dropping nextjs (20) leaves 80
    config = AuditConfig.from_dict({"categories": {"nextjs": {"weight": 0}}})
    warnings = config.validate()

    assert len(warnings) == 1
    assert "80" in warnings[0]
    assert "100" in warnings[0]
    assert config.warnings == warnings


def test_validation_collects_every_error():
    config = AuditConfig.from_dict({
        "thresholds": {"minScore": -1},
        "rules": {"mui/inline-styles": "fatal"},
        "output": {"formats": ["pdf"]},
        "categories": {"image": {"weight": 10}},
    })
    with pytest.raises(ConfigurationError) as exc_info:
        config.validate()

    errors = exc_info.value.details["errors"]
    assert len(errors) == 4
    assert exc_info.value.code == "CONFIG_INVALID"


def test_malformed_glob_is_rejected():
    config = AuditConfig.from_dict({"include": ["src/**/*.{ts,tsx"]})
    with pytest.raises(ConfigurationError, match="include"):
        config.validate()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def test_rule_settings():
    config = AuditConfig.from_dict({"rules": {
        "mui/inline-styles": "info",
        "next/image-usage": "off",
        "mui/theme-token-enforcement": {"severity": "error", "options": {"allowedColors": ["primary"]}},
    }})

    assert config.is_rule_enabled("mui/inline-styles")
    assert not config.is_rule_enabled("next/image-usage")
    assert config.is_rule_enabled("a11y/missing-alt")

    assert config.get_rule_severity("mui/inline-styles") is Severity.INFO
    assert config.get_rule_severity("mui/theme-token-enforcement") is Severity.ERROR
    assert config.get_rule_severity("a11y/missing-alt", "error") is Severity.ERROR
    assert config.get_rule_options("mui/theme-token-enforcement") == {"allowedColors": ["primary"]}
    assert config.get_rule_options("mui/inline-styles") == {}


def test_category_weights():
    config = AuditConfig.from_dict({})
    assert config.get_category_weight("nextjs") == 20
    assert config.get_category_weight("seo") == 0
    assert "seo" not in config.weighted_categories()
    assert sum(config.weighted_categories().values()) == 100


def test_include_and_ignore():
    config = AuditConfig.from_dict({"ignore": ["node_modules", "**/*.stories.tsx"]})

    assert config.should_include("src/components/Button.tsx")
    assert config.should_include("app/page.jsx")
    assert not config.should_include("scripts/build.ts")
    assert not config.should_include("src/styles.css")

    assert config.should_ignore("node_modules/react/index.js")
    assert config.should_ignore("src/node_modules/x/index.js")
    assert config.should_ignore("src/components/Button.stories.tsx")
    assert not config.should_ignore("src/components/Button.tsx")


def test_bare_include_names_match_directories():
    config = AuditConfig.from_dict({"include": ["src"]})

    assert config.should_include("src/a.jsx")
    assert config.should_include("src/components/Button.tsx")
    assert not config.should_include("app/page.jsx")


def test_default_include_covers_next_config():
    config = AuditConfig.from_dict({})
    assert config.should_include("next.config.js")
    assert config.should_include("next.config.mjs")


def test_output_path_is_relative_to_base_dir(tmp_path):
    config = AuditConfig.from_dict({"output": {"directory": "reports"}}, base_dir=tmp_path)
    assert config.output_path() == tmp_path / "reports"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def test_load_without_config_file_uses_defaults(tmp_path):
    config = AuditConfig.load(root=tmp_path, env={})
    assert config.source_path is None
    assert config.base_dir == tmp_path.resolve()
    assert config.formats == ["json", "markdown"]


def test_load_detects_yaml_config(tmp_path):
    write_yaml(tmp_path / "audit.config.yaml", {"thresholds": {"minScore": 70}})

    config = AuditConfig.load(root=tmp_path, env={})

    assert config.min_score == 70
    assert config.source_path == tmp_path.resolve() / "audit.config.yaml"
    # Untouched sections keep their defaults
    assert config.get_category_weight("mui") == 20


def test_load_json_config(tmp_path):
    (tmp_path / "audit.config.json").write_text(
        json.dumps({"rules": {"quality/console-usage": "off"}}), encoding="utf-8"
    )
    config = AuditConfig.load(root=tmp_path, env={})
    assert not config.is_rule_enabled("quality/console-usage")


def test_snake_case_keys_accepted(tmp_path):
    write_yaml(tmp_path / "audit.config.yaml", {
        "thresholds": {"min_score": 60, "fail_on_critical": False},
        "continue_on_error": True,
        "max_workers": 2,
    })
    config = AuditConfig.load(root=tmp_path, env={})
    assert config.min_score == 60
    assert config.fail_on_critical is False
    assert config.continue_on_error is True
    assert config.max_workers == 2


def test_missing_explicit_config_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        AuditConfig.load(config_path="nope.yaml", root=tmp_path, env={})


def test_unparsable_config_raises(tmp_path):
    (tmp_path / "audit.config.yaml").write_text("rules: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Could not parse"):
        AuditConfig.load(root=tmp_path, env={})


def test_extends_merges_underneath(tmp_path):
    write_yaml(tmp_path / "shared" / "base.yaml", {
        "thresholds": {"minScore": 50, "failOnCritical": False},
        "rules": {"mui/inline-styles": "info"},
    })
    write_yaml(tmp_path / "audit.config.yaml", {
        "extends": ["shared/base.yaml"],
        "thresholds": {"minScore": 75},
    })

    config = AuditConfig.load(root=tmp_path, env={})

    assert config.min_score == 75
    assert config.fail_on_critical is False
    assert config.get_rule_severity("mui/inline-styles") is Severity.INFO


def test_circular_extends_raises(tmp_path):
    write_yaml(tmp_path / "a.yaml", {"extends": ["b.yaml"]})
    write_yaml(tmp_path / "b.yaml", {"extends": ["a.yaml"]})

    with pytest.raises(ConfigurationError, match="Circular"):
        AuditConfig.load(config_path="a.yaml", root=tmp_path, env={})


def test_env_overrides(tmp_path):
    write_yaml(tmp_path / "audit.config.yaml", {"thresholds": {"minScore": 70}})
    env = {
        "NEXTJS_MUI_AUDIT_MIN_SCORE": "90",
        "NEXTJS_MUI_AUDIT_FAIL_ON_CRITICAL": "false",
        "NEXTJS_MUI_AUDIT_MAX_WORKERS": "1",
    }

    config = AuditConfig.load(root=tmp_path, env=env)

    assert config.min_score == 90
    assert config.fail_on_critical is False
    assert config.max_workers == 1


def test_invalid_env_override(tmp_path):
    with pytest.raises(ConfigurationError, match="MIN_SCORE"):
        AuditConfig.load(root=tmp_path, env={"NEXTJS_MUI_AUDIT_MIN_SCORE": "high"})


def test_overrides_win_over_file(tmp_path):
    write_yaml(tmp_path / "audit.config.yaml", {"output": {"formats": ["html"]}})
    config = AuditConfig.load(root=tmp_path, overrides={"output": {"formats": ["json"]}}, env={})
    assert config.formats == ["json"]


# ---------------------------------------------------------------------------
# Starter config
# ---------------------------------------------------------------------------


def test_write_default_config_round_trips(tmp_path):
    path = write_default_config(tmp_path / "audit.config.yaml")

    assert path.read_text(encoding="utf-8").startswith("# Next.js + MUI audit configuration")
    assert find_config_file(tmp_path) == path

    config = AuditConfig.load(root=tmp_path, env={})
    assert config.get_rule_severity("mui/theme-token-enforcement") is Severity.ERROR
    assert config.to_dict()["thresholds"]["minScore"] == 85


def test_write_default_config_refuses_to_overwrite(tmp_path):
    path = write_default_config(tmp_path / "audit.config.yaml")
    with pytest.raises(ConfigurationError, match="already exists"):
        write_default_config(path)
    write_default_config(path, overwrite=True)


@pytest.mark.parametrize("value", ["many", True, [4]])
def test_non_integer_max_workers_is_a_config_error(value):
    with pytest.raises(ConfigurationError, match="maxWorkers must be an integer"):
        AuditConfig.from_dict({"maxWorkers": value})


def test_non_integer_max_workers_in_file(tmp_path):
    write_yaml(tmp_path / "audit.config.yaml", {"maxWorkers": "many"})
    with pytest.raises(ConfigurationError, match="maxWorkers"):
        AuditConfig.load(root=tmp_path, env={})


def test_non_integer_max_workers_env(tmp_path):
    with pytest.raises(ConfigurationError, match="MAX_WORKERS"):
        AuditConfig.load(root=tmp_path, env={"NEXTJS_MUI_AUDIT_MAX_WORKERS": "many"})
