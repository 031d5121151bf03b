"""Plugin host: external rules, content processors and lifecycle hooks.

A plugin is a module, an object or a mapping exposing any of:

- ``rules``: Rule instances or rule mappings (see ``rule_from_dict``)
- ``processors``: file extension -> ``callable(content, path) -> str | None``
- ``hooks``: hook name -> ``callable(snapshot)``
- ``initialize``: ``callable(settings)`` run once at registration

Module plugins may use upper-case names (``RULES``, ``PROCESSORS``, ``HOOKS``).
"""
from __future__ import annotations

import importlib
import importlib.util
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable

from nextjs_mui_audit.core.rules.base import Rule, rule_from_dict
from nextjs_mui_audit.errors import ConfigurationError
from nextjs_mui_audit.hook_types import HOOK_ALIASES, HOOK_NAMES, HookSnapshot

logger = logging.getLogger(__name__)

Processor = Callable[[str, str], "str | None"]
Hook = Callable[[HookSnapshot], Any]


def _member(plugin: Any, name: str) -> Any:
    if isinstance(plugin, Mapping):
        return plugin.get(name)
    return getattr(plugin, name, None) or getattr(plugin, name.upper(), None)


class PluginHost:
    """Registry of plugin contributions, built before a scan starts."""

    def __init__(self, settings: Mapping[str, Any] | None = None):
        self.settings = dict(settings or {})
        self.plugins: dict[str, Any] = {}
        self._rules: list[Rule] = []
        self._processors: dict[str, list[tuple[str, Processor]]] = {}
        self._hooks: dict[str, list[tuple[str, Hook]]] = {name: [] for name in HOOK_NAMES}

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules)

    def hook_count(self, hook: str) -> int:
        return len(self._hooks.get(hook, []))

    def register_plugin(self, name: str, plugin: Any) -> None:
        """Validate and register one plugin.

        Raises:
            ConfigurationError: If the plugin is malformed, or its rules clash.
        """
        if name in self.plugins:
            raise ConfigurationError(f"Plugin {name!r} is already registered")

        rules = _member(plugin, "rules") or []
        processors = _member(plugin, "processors") or {}
        hooks = _member(plugin, "hooks") or {}
        initialize = _member(plugin, "initialize")

        if not (rules or processors or hooks):
            raise ConfigurationError(f"Plugin {name!r} provides no rules, processors or hooks")
        if not isinstance(processors, Mapping) or not isinstance(hooks, Mapping):
            raise ConfigurationError(f"Plugin {name!r}: processors and hooks must be mappings")

        new_rules = [self._coerce_rule(rule, name) for rule in rules]
        known = {rule.id for rule in self._rules}
        for rule in new_rules:
            if rule.id in known:
                raise ConfigurationError(f"Plugin {name!r} redefines rule {rule.id!r}")
            known.add(rule.id)

        new_hooks = []
        for hook_name, handler in hooks.items():
            canonical = HOOK_ALIASES.get(hook_name, hook_name)
            if canonical not in self._hooks:
                raise ConfigurationError(f"Plugin {name!r}: unknown hook {hook_name!r}")
            if not callable(handler):
                raise ConfigurationError(f"Plugin {name!r}: hook {hook_name!r} is not callable")
            new_hooks.append((canonical, handler))

        new_processors = []
        for extension, processor in processors.items():
            if not callable(processor):
                raise ConfigurationError(f"Plugin {name!r}: processor for {extension!r} is not callable")
            key = extension.lower() if extension.startswith(".") else f".{extension.lower()}"
            new_processors.append((key, processor))

        if initialize is not None:
            try:
                initialize(self.settings.get(name, {}))
            except Exception as e:
                raise ConfigurationError(f"Plugin {name!r} failed to initialize: {e}") from e

        # Commit only once everything validated
        self.plugins[name] = plugin
        self._rules.extend(new_rules)
        for canonical, handler in new_hooks:
            self._hooks[canonical].append((name, handler))
        for key, processor in new_processors:
            self._processors.setdefault(key, []).append((name, processor))

        logger.info(
            f"Registered plugin {name}: {len(new_rules)} rules, "
            f"{len(new_processors)} processors, {len(new_hooks)} hooks"
        )

    @staticmethod
    def _coerce_rule(rule: Any, plugin_name: str) -> Rule:
        if isinstance(rule, Rule):
            return rule
        if isinstance(rule, Mapping):
            return rule_from_dict(dict(rule), source=plugin_name)
        raise ConfigurationError(f"Plugin {plugin_name!r}: invalid rule {rule!r}")

    def load_plugins(self, specs: list[str], base_dir: Path | None = None) -> None:
        """Load plugins named by dotted module path or by ``.py``/directory path."""
        base_dir = Path(base_dir or Path.cwd())
        for spec in specs:
            name, plugin = self._import(spec, base_dir)
            self.register_plugin(name, plugin)

    def load_directory(self, directory: Path) -> list[str]:
        """Load every ``*.py`` module and package in a directory, sorted by name."""
        directory = Path(directory)
        if not directory.is_dir():
            logger.debug(f"Plugins directory does not exist: {directory}")
            return []

        loaded = []
        for entry in sorted(directory.iterdir()):
            if entry.name.startswith(("_", ".")):
                continue
            if entry.suffix == ".py" or (entry.is_dir() and (entry / "__init__.py").is_file()):
                name, plugin = self._import(str(entry), directory)
                self.register_plugin(name, plugin)
                loaded.append(name)
        return loaded

    @staticmethod
    def _import(spec: str, base_dir: Path) -> tuple[str, Any]:
        looks_like_path = spec.endswith(".py") or "/" in spec or spec.startswith(".")
        try:
            if not looks_like_path:
                return spec, importlib.import_module(spec)

            path = Path(spec).expanduser()
            if not path.is_absolute():
                path = base_dir / path
            if path.is_dir():
                path = path / "__init__.py"
            if not path.is_file():
                raise ConfigurationError(f"Plugin not found: {spec} (resolved to {path})")

            name = path.parent.name if path.name == "__init__.py" else path.stem
            module_spec = importlib.util.spec_from_file_location(f"nextjs_mui_audit_plugin_{name}", path)
            if module_spec is None or module_spec.loader is None:
                raise ConfigurationError(f"Cannot import plugin from {path}")
            module = importlib.util.module_from_spec(module_spec)
            module_spec.loader.exec_module(module)
            return name, module
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load plugin {spec!r}: {e}") from e

    def run_hook(self, hook: str, snapshot: HookSnapshot) -> None:
        """Call each handler for ``hook`` in registration order.

        A failing handler is logged and skipped.
        """
        for plugin_name, handler in self._hooks.get(hook, []):
            try:
                handler(snapshot)
            except Exception as e:
                logger.warning(f"Hook {hook} failed in plugin {plugin_name}: {e}", exc_info=True)

    def process(self, path: str, content: str) -> str:
        """Run the processors registered for the file's extension over its content."""
        extension = Path(path).suffix.lower()
        for plugin_name, processor in self._processors.get(extension, []):
            try:
                result = processor(content, path)
            except Exception as e:
                logger.warning(f"Processor {extension} from plugin {plugin_name} failed on {path}: {e}")
                continue
            if isinstance(result, str):
                content = result
        return content
