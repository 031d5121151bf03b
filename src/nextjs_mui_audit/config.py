"""Configuration management with config files and environment variable overrides."""
from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from nextjs_mui_audit.core.globs import GlobSet
from nextjs_mui_audit.core.models import Category, Severity
from nextjs_mui_audit.errors import ConfigurationError

logger = logging.getLogger(__name__)

VERSION = "1.1.0"

ENV_PREFIX = "NEXTJS_MUI_AUDIT_"

# Searched in order in the project root when no config path is given
CONFIG_FILES = ("audit.config.yaml", "audit.config.yml", "audit.config.json", ".auditrc.yaml")

VALID_FORMATS = ("json", "markdown", "html")

RULE_OFF = "off"

DEFAULTS: dict[str, Any] = {
    "rules": {},
    "categories": {
        "nextjs": {"weight": 20},
        "mui": {"weight": 20},
        "accessibility": {"weight": 15},
        "responsive": {"weight": 15},
        "performance": {"weight": 10},
        "security": {"weight": 5},
        "quality": {"weight": 10},
        "testing": {"weight": 5},
    },
    "thresholds": {
        "minScore": 85,
        "failOnCritical": True,
    },
    "ignore": [
        "node_modules/**",
        ".next/**",
        "out/**",
        "build/**",
        "dist/**",
        ".git/**",
        "coverage/**",
    ],
    "include": [
        "src/**/*.{js,jsx,ts,tsx}",
        "pages/**/*.{js,jsx,ts,tsx}",
        "app/**/*.{js,jsx,ts,tsx}",
        "components/**/*.{js,jsx,ts,tsx}",
        "next.config.{js,mjs,ts}",
    ],
    "output": {
        "formats": ["json", "markdown"],
        "directory": "audit",
        "verbose": False,
    },
    "plugins": [],
    "extends": [],
    "pluginSettings": {},
    "continueOnError": False,
    "maxWorkers": 4,
}

_TRUE = ("true", "1", "yes", "on")
_GLOB_CHARS = set("*?[{")


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` onto ``base``. Lists and scalars replace."""
    result = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _pick(data: Mapping[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    """Config files may spell keys in camelCase or snake_case."""
    if camel in data:
        return data[camel]
    return data.get(snake, default)


def _as_glob(pattern: str) -> str:
    # A bare name like "node_modules" ignores that directory anywhere in the tree
    if _GLOB_CHARS.isdisjoint(pattern):
        name = pattern.strip("/")
        return "{" + f"{name},{name}/**,**/{name},**/{name}/**" + "}"
    return pattern


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer (got {value!r})")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer (got {value!r})") from None


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML or JSON config file into a dict."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Could not read config file {path}: {e}") from e

    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not parse config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def find_config_file(root: Path) -> Path | None:
    for name in CONFIG_FILES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


@dataclass
class AuditConfig:
    """Resolved audit configuration.

    Built from defaults, then a config file (plus anything it ``extends``),
    then ``NEXTJS_MUI_AUDIT_*`` environment variables. Treated as read-only
    once validated.
    """

    rules: dict[str, Any] = field(default_factory=dict)
    categories: dict[str, dict[str, Any]] = field(
        default_factory=lambda: copy.deepcopy(DEFAULTS["categories"])
    )
    min_score: float = 85
    fail_on_critical: bool = True
    ignore: list[str] = field(default_factory=lambda: list(DEFAULTS["ignore"]))
    include: list[str] = field(default_factory=lambda: list(DEFAULTS["include"]))
    formats: list[str] = field(default_factory=lambda: ["json", "markdown"])
    output_dir: str = "audit"
    verbose: bool = False
    plugins: list[str] = field(default_factory=list)
    extends: list[str] = field(default_factory=list)
    plugin_settings: dict[str, Any] = field(default_factory=dict)
    continue_on_error: bool = False
    max_workers: int = 4

    # Directory relative paths (plugins, output) resolve against
    base_dir: Path = field(default_factory=Path.cwd)
    source_path: Path | None = None
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self):
        self._include_globs: GlobSet | None = None
        self._ignore_globs: GlobSet | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None = None, base_dir: Path | None = None) -> "AuditConfig":
        """Build a config from a (possibly partial) mapping merged over the defaults."""
        merged = deep_merge(DEFAULTS, data or {})
        thresholds = merged.get("thresholds") or {}
        output = merged.get("output") or {}

        return cls(
            rules=dict(merged.get("rules") or {}),
            categories=dict(merged.get("categories") or {}),
            min_score=_pick(thresholds, "minScore", "min_score", 85),
            fail_on_critical=bool(_pick(thresholds, "failOnCritical", "fail_on_critical", True)),
            ignore=list(merged.get("ignore") or []),
            include=list(merged.get("include") or []),
            formats=list(output.get("formats") or []),
            output_dir=str(output.get("directory", "audit")),
            verbose=bool(output.get("verbose", False)),
            plugins=list(merged.get("plugins") or []),
            extends=list(merged.get("extends") or []),
            plugin_settings=dict(_pick(merged, "pluginSettings", "plugin_settings", {}) or {}),
            continue_on_error=bool(_pick(merged, "continueOnError", "continue_on_error", False)),
            max_workers=_as_int(_pick(merged, "maxWorkers", "max_workers", 4), "maxWorkers"),
            base_dir=Path(base_dir) if base_dir else Path.cwd(),
        )

    @classmethod
    def load(
        cls,
        config_path: str | Path | None = None,
        root: str | Path | None = None,
        overrides: Mapping[str, Any] | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "AuditConfig":
        """Load config with file discovery, ``extends`` and environment overrides.

        Args:
            config_path: Explicit config file. Missing or unparsable -> ConfigurationError.
            root: Project root searched for a config file when no path is given.
            overrides: Mapping merged on top of the file (used by CLI flags).
            env: Environment to read overrides from (defaults to os.environ).

        Raises:
            ConfigurationError: If the file or the resulting config is invalid.
        """
        root = Path(root or Path.cwd()).resolve()
        env = os.environ if env is None else env

        source: Path | None = None
        data: dict[str, Any] = {}
        if config_path:
            source = Path(config_path).expanduser()
            if not source.is_absolute():
                source = root / source
            if not source.is_file():
                raise ConfigurationError(f"Config file not found: {source}")
        else:
            source = find_config_file(root)

        if source is not None:
            logger.info(f"Loading config from {source}")
            data = read_config_file(source)
            data = cls._apply_extends(data, source.parent, seen={source.resolve()})

        if overrides:
            data = deep_merge(data, overrides)

        config = cls.from_dict(data, base_dir=root)
        config.source_path = source
        config.apply_env(env)
        config.validate()
        return config

    @classmethod
    def _apply_extends(cls, data: dict[str, Any], base: Path, seen: set[Path]) -> dict[str, Any]:
        """Merge each ``extends`` file underneath ``data`` (later entries win over earlier)."""
        extends = data.get("extends") or []
        if isinstance(extends, str):
            extends = [extends]

        merged: dict[str, Any] = {}
        for entry in extends:
            path = (base / entry).resolve()
            if path in seen:
                raise ConfigurationError(f"Circular extends: {path}")
            if not path.is_file():
                raise ConfigurationError(f"Extended config not found: {entry} (resolved to {path})")
            logger.debug(f"Extending config with {path}")
            parent = cls._apply_extends(read_config_file(path), path.parent, seen | {path})
            merged = deep_merge(merged, parent)
        return deep_merge(merged, data)

    def apply_env(self, env: Mapping[str, str]) -> None:
        """Apply NEXTJS_MUI_AUDIT_* environment overrides."""
        if val := env.get(f"{ENV_PREFIX}MIN_SCORE"):
            try:
                self.min_score = float(val)
            except ValueError:
                raise ConfigurationError(f"{ENV_PREFIX}MIN_SCORE must be a number (got {val!r})") from None
        if val := env.get(f"{ENV_PREFIX}FAIL_ON_CRITICAL"):
            self.fail_on_critical = val.lower() in _TRUE
        if val := env.get(f"{ENV_PREFIX}OUTPUT_DIR"):
            self.output_dir = val
        if val := env.get(f"{ENV_PREFIX}VERBOSE"):
            self.verbose = val.lower() in _TRUE
        if val := env.get(f"{ENV_PREFIX}MAX_WORKERS"):
            self.max_workers = _as_int(val, f"{ENV_PREFIX}MAX_WORKERS")

    def validate(self) -> list[str]:
        """Check every invariant, raising on errors and returning warnings.

        Raises:
            ConfigurationError: Listing every problem found.
        """
        errors: list[str] = []
        warnings: list[str] = []

        if not isinstance(self.min_score, (int, float)) or isinstance(self.min_score, bool):
            errors.append(f"minScore must be a number between 0 and 100 (got {self.min_score!r})")
        elif not 0 <= self.min_score <= 100:
            errors.append(f"minScore must be between 0 and 100 (got {self.min_score:g})")

        total_weight = 0
        for name, settings in self.categories.items():
            try:
                Category.parse(name)
            except ConfigurationError as e:
                errors.append(str(e))
                continue
            weight = settings.get("weight", 0) if isinstance(settings, Mapping) else settings
            if not isinstance(weight, (int, float)) or isinstance(weight, bool) or weight < 0:
                errors.append(f"Category {name} weight must be a non-negative number (got {weight!r})")
                continue
            total_weight += weight
        if total_weight != 100:
            warnings.append(
                f"Category weights sum to {total_weight:g}, not 100. This may affect scoring."
            )

        for rule_id, setting in self.rules.items():
            problem = self._check_rule_setting(rule_id, setting)
            if problem:
                errors.append(problem)

        invalid_formats = [f for f in self.formats if f not in VALID_FORMATS]
        if invalid_formats:
            errors.append(
                f"Invalid output formats: {', '.join(map(str, invalid_formats))}. "
                f"Valid formats: {', '.join(VALID_FORMATS)}"
            )

        if self.max_workers < 1:
            errors.append(f"maxWorkers must be at least 1 (got {self.max_workers})")

        for label, patterns in (("include", self.include), ("ignore", self.ignore)):
            try:
                GlobSet([_as_glob(p) for p in patterns])
            except ConfigurationError as e:
                errors.append(f"{label}: {e}")

        if errors:
            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(errors),
                details={"errors": errors},
            )

        for warning in warnings:
            logger.warning(warning)
        self.warnings = warnings
        return warnings

    @staticmethod
    def _check_rule_setting(rule_id: str, setting: Any) -> str | None:
        if isinstance(setting, bool):
            return None
        if isinstance(setting, str):
            severity = setting
        elif isinstance(setting, Mapping):
            severity = setting.get("severity")
            options = setting.get("options", {})
            if not isinstance(options, Mapping):
                return f"Rule {rule_id} options must be a mapping"
            if severity is None:
                return None
        else:
            return f"Rule {rule_id} setting must be a severity, 'off' or a mapping (got {setting!r})"

        if severity == RULE_OFF:
            return None
        try:
            Severity.parse(severity)
        except ConfigurationError as e:
            return f"Rule {rule_id}: {e}"
        return None

    # Rule settings

    def is_rule_enabled(self, rule_id: str) -> bool:
        setting = self.rules.get(rule_id)
        if setting is None:
            return True
        if isinstance(setting, bool):
            return setting
        if isinstance(setting, str):
            return setting != RULE_OFF
        if isinstance(setting, Mapping):
            return setting.get("severity") != RULE_OFF
        return bool(setting)

    def get_rule_severity(self, rule_id: str, default: Severity | str = Severity.WARNING) -> Severity:
        """Configured severity override for a rule, else ``default``."""
        setting = self.rules.get(rule_id)
        if isinstance(setting, Mapping):
            setting = setting.get("severity")
        if isinstance(setting, str) and setting != RULE_OFF:
            return Severity.parse(setting)
        return Severity.parse(default)

    def get_rule_options(self, rule_id: str) -> dict[str, Any]:
        setting = self.rules.get(rule_id)
        if isinstance(setting, Mapping):
            return dict(setting.get("options") or {})
        return {}

    # Categories

    def get_category_weight(self, category: Category | str) -> float:
        """Configured weight, or 0 for a category the config does not weight."""
        name = category.value if isinstance(category, Category) else category
        settings = self.categories.get(name)
        if isinstance(settings, Mapping):
            return settings.get("weight", 0) or 0
        if isinstance(settings, (int, float)):
            return settings
        return 0

    def weighted_categories(self) -> dict[str, float]:
        """Categories with a positive weight, in config order."""
        weights = {}
        for name in self.categories:
            weight = self.get_category_weight(name)
            if weight > 0:
                weights[name] = weight
        return weights

    # File selection

    @property
    def include_globs(self) -> GlobSet:
        if self._include_globs is None:
            self._include_globs = GlobSet([_as_glob(p) for p in self.include])
        return self._include_globs

    @property
    def ignore_globs(self) -> GlobSet:
        if self._ignore_globs is None:
            self._ignore_globs = GlobSet([_as_glob(p) for p in self.ignore])
        return self._ignore_globs

    def should_include(self, relative_path: str) -> bool:
        if not self.include:
            return True
        return self.include_globs.matches(relative_path)

    def should_ignore(self, relative_path: str) -> bool:
        return self.ignore_globs.matches(relative_path)

    def output_path(self) -> Path:
        path = Path(self.output_dir).expanduser()
        return path if path.is_absolute() else self.base_dir / path

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the config file layout."""
        return {
            "rules": copy.deepcopy(self.rules),
            "categories": copy.deepcopy(self.categories),
            "thresholds": {"minScore": self.min_score, "failOnCritical": self.fail_on_critical},
            "ignore": list(self.ignore),
            "include": list(self.include),
            "output": {"formats": list(self.formats), "directory": self.output_dir, "verbose": self.verbose},
            "plugins": list(self.plugins),
            "extends": list(self.extends),
            "pluginSettings": copy.deepcopy(self.plugin_settings),
            "continueOnError": self.continue_on_error,
            "maxWorkers": self.max_workers,
        }


DEFAULT_CONFIG_HEADER = """\
# Next.js + MUI audit configuration
#
# rules:       rule id -> severity (error|warning|info), "off",
#              or {severity: ..., options: {...}}
# categories:  scoring weights, expected to sum to 100
# thresholds:  minScore (0-100) and failOnCritical
# include/ignore: glob patterns relative to the project root

"""


def write_default_config(path: str | Path = "audit.config.yaml", overwrite: bool = False) -> Path:
    """Write a starter config file and return its path."""
    path = Path(path)
    if path.exists() and not overwrite:
        raise ConfigurationError(f"Config file already exists: {path}")

    starter = deep_merge(DEFAULTS, {
        "rules": {
            "mui/inline-styles": "error",
            "next/image-usage": "warning",
            "mui/theme-usage": "info",
            "mui/theme-token-enforcement": {
                "severity": "error",
                "options": {"allowedColors": ["primary", "secondary", "error", "warning", "info", "success"]},
            },
        },
    })

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(DEFAULT_CONFIG_HEADER)
        yaml.dump(starter, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
    logger.info(f"Wrote default config to {path}")
    return path
