"""Tests for the plugin host: registration, hooks and processors."""
from pathlib import Path

import pytest

from nextjs_mui_audit.config import AuditConfig
from nextjs_mui_audit.core.plugins import PluginHost
from nextjs_mui_audit.core.rules import build_catalog
from nextjs_mui_audit.core.scanner import Scanner
from nextjs_mui_audit.errors import ConfigurationError

TODO_RULE = {
    "id": "custom/no-todo",
    "category": "quality",
    "severity": "info",
    "message": "Leftover TODO comment",
    "pattern": r"//\s*TODO",
}

PLUGIN_SOURCE = '''
SEEN = []

RULES = [{
    "id": "acme/no-lorem",
    "category": "quality",
    "severity": "warning",
    "message": "Placeholder copy",
    "pattern": r"[Ll]orem ipsum",
}]


def initialize(settings):
    SEEN.append(settings)
'''


def write_file(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def scanner_for(host: PluginHost, root: Path) -> Scanner:
    return Scanner(catalog=build_catalog(host), config=AuditConfig.from_dict({}, base_dir=root), plugins=host)


def test_plugin_rules_join_the_catalog(tmp_path):
    host = PluginHost()
    host.register_plugin("todos", {"rules": [TODO_RULE]})
    write_file(tmp_path, "src/a.ts", "// TODO: remove\nexport const a = 1;\n")

    result = scanner_for(host, tmp_path).scan(tmp_path)

    [finding] = [f for f in result.files["src/a.ts"].findings if f.rule == "custom/no-todo"]
    assert finding.line == 1
    assert build_catalog(host).find_rule("custom/no-todo").source == "todos"


def test_plugin_rule_clashing_with_builtin_is_rejected():
    host = PluginHost()
    host.register_plugin("clash", {"rules": [{**TODO_RULE, "id": "mui/inline-styles"}]})
    with pytest.raises(ConfigurationError, match="Duplicate rule id"):
        build_catalog(host)


def test_duplicate_rule_across_plugins_is_rejected():
    host = PluginHost()
    host.register_plugin("first", {"rules": [TODO_RULE]})
    with pytest.raises(ConfigurationError, match="redefines"):
        host.register_plugin("second", {"rules": [TODO_RULE]})
    assert list(host.plugins) == ["first"]


def test_duplicate_plugin_name_is_rejected():
    host = PluginHost()
    host.register_plugin("todos", {"rules": [TODO_RULE]})
    with pytest.raises(ConfigurationError, match="already registered"):
        host.register_plugin("todos", {"rules": [{**TODO_RULE, "id": "custom/other"}]})


@pytest.mark.parametrize("plugin, message", [
    ({}, "provides no"),
    ({"hooks": {"on_everything": lambda s: None}}, "unknown hook"),
    ({"hooks": {"before_scan": "not callable"}}, "not callable"),
    ({"processors": {".tsx": 42}}, "not callable"),
    ({"rules": [{"id": "x/y", "category": "quality", "severity": "info", "message": "m"}]}, "exactly one"),
])
def test_malformed_plugins_are_rejected(plugin, message):
    host = PluginHost()
    with pytest.raises(ConfigurationError, match=message):
        host.register_plugin("bad", plugin)
    assert host.plugins == {}
    assert host.rules == []


def test_initialize_receives_settings():
    received = []
    host = PluginHost(settings={"todos": {"strict": True}})
    host.register_plugin("todos", {"rules": [TODO_RULE], "initialize": received.append})
    assert received == [{"strict": True}]


def test_initialize_failure_rejects_plugin():
    def fail(settings):
        raise RuntimeError("no licence")

    host = PluginHost()
    with pytest.raises(ConfigurationError, match="failed to initialize"):
        host.register_plugin("todos", {"rules": [TODO_RULE], "initialize": fail})
    assert host.rules == []


def test_hooks_run_in_order_and_failures_are_tolerated(tmp_path):
    calls = []

    def broken(snapshot):
        raise RuntimeError("hook exploded")

    host = PluginHost()
    host.register_plugin("broken", {"hooks": {"before_scan": broken, "after_file": broken}})
    host.register_plugin("recorder", {"hooks": {
        "beforeScan": lambda s: calls.append(s.hook),
        "beforeFile": lambda s: calls.append(s.hook),
        "afterFile": lambda s: calls.append(s.hook),
        "afterScan": lambda s: calls.append(s.hook),
    }})
    write_file(tmp_path, "src/a.tsx", "export const a = 1;\n")

    result = scanner_for(host, tmp_path).scan(tmp_path)

    assert "src/a.tsx" in result.files
    assert calls == ["before_scan", "before_file", "after_file", "after_scan"]
    assert host.hook_count("before_scan") == 2


def test_file_hooks_arrive_in_path_order_with_workers(tmp_path):
    calls = []
    host = PluginHost()
    host.register_plugin("recorder", {"hooks": {
        "before_file": lambda s: calls.append((s.hook, s.path)),
        "after_file": lambda s: calls.append((s.hook, s.path)),
    }})
    paths = [f"src/c{i:02d}.tsx" for i in range(12)]
    for rel in reversed(paths):
        write_file(tmp_path, rel, "export const a = 1;\n")
    config = AuditConfig.from_dict({"maxWorkers": 4}, base_dir=tmp_path)

    Scanner(catalog=build_catalog(host), config=config, plugins=host).scan(tmp_path)

    expected = [(hook, rel) for rel in paths for hook in ("before_file", "after_file")]
    assert calls == expected


def test_hook_snapshots_are_frozen(tmp_path):
    def mutate(snapshot):
        snapshot.total_files = 999

    host = PluginHost()
    host.register_plugin("mutator", {"hooks": {"before_scan": mutate}})
    write_file(tmp_path, "src/a.tsx", "export const a = 1;\n")

    result = scanner_for(host, tmp_path).scan(tmp_path)

    assert result.summary.total_files == 1


def test_processors_rewrite_content_before_rules(tmp_path):
    host = PluginHost()
    host.register_plugin("mdx-ish", {
        "processors": {"tsx": lambda content, path: content.replace("<picture", "<img")},
    })
    write_file(tmp_path, "src/a.tsx", '<picture src="/a.png" alt="" />\n')

    findings = scanner_for(host, tmp_path).scan(tmp_path).files["src/a.tsx"].findings

    assert "next/image-usage" in {f.rule for f in findings}


def test_failing_processor_is_skipped(tmp_path):
    def broken(content, path):
        raise ValueError("nope")

    host = PluginHost()
    host.register_plugin("broken", {"processors": {".tsx": broken}})
    assert host.process("a.tsx", "original") == "original"


def test_load_plugin_from_path(tmp_path):
    write_file(tmp_path, "plugins/acme.py", PLUGIN_SOURCE)
    host = PluginHost(settings={"acme": {"level": 2}})

    host.load_plugins(["plugins/acme.py"], base_dir=tmp_path)

    assert [r.id for r in host.rules] == ["acme/no-lorem"]
    assert host.plugins["acme"].SEEN == [{"level": 2}]


def test_load_directory(tmp_path):
    write_file(tmp_path, "plugins/acme.py", PLUGIN_SOURCE)
    write_file(tmp_path, "plugins/_private.py", "raise RuntimeError('never imported')\n")

    host = PluginHost()
    assert host.load_directory(tmp_path / "plugins") == ["acme"]
    assert host.load_directory(tmp_path / "missing") == []


def test_missing_plugin_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="Plugin not found"):
        PluginHost().load_plugins(["./plugins/nope.py"], base_dir=tmp_path)


def test_broken_plugin_module_raises(tmp_path):
    write_file(tmp_path, "bad.py", "import does_not_exist_anywhere\n")
    with pytest.raises(ConfigurationError, match="Failed to load plugin"):
        PluginHost().load_plugins(["bad.py"], base_dir=tmp_path)
