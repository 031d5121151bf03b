"""Rule variants and location helpers shared by every rule module."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Union

from nextjs_mui_audit.core.models import Category, Finding, Severity
from nextjs_mui_audit.errors import ConfigurationError

# Pattern rules only run on files that can contain JSX/TSX-like syntax
SOURCE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs")

# Attribute text of a JSX opening tag. {...} expressions (two levels deep)
# are consumed whole, so the ">" of an arrow function does not end the tag.
TAG_ATTRS = r"(?:[^>{]|\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\})*"


@dataclass(frozen=True)
class Hit:
    """A location reported by a structural check.

    The owning rule fills in everything the hit leaves unset.
    """
    line: int
    column: int = 1
    message: str | None = None
    suggestion: str | None = None
    severity: Severity | str | None = None
    excerpt: str | None = None


CheckResult = Iterable[Union[Hit, Finding]]
CheckFunction = Callable[[str, list[str], str], CheckResult]


def line_col(content: str, index: int) -> tuple[int, int]:
    """1-based (line, column) of a character offset."""
    line = content.count("\n", 0, index) + 1
    last_newline = content.rfind("\n", 0, index)
    return line, index - last_newline


def excerpt_at(lines: list[str], line: int) -> str:
    if 1 <= line <= len(lines):
        return lines[line - 1].strip()
    return ""


def is_source_file(path: str) -> bool:
    return path.lower().endswith(SOURCE_EXTENSIONS)


@dataclass(frozen=True, kw_only=True)
class Rule:
    """Common rule metadata. Use PatternRule or StructuralRule."""
    id: str
    category: Category
    severity: Severity
    message: str
    suggestion: str = ""
    should_check: Callable[[str], bool] | None = field(default=None, compare=False)
    fixable: bool = False
    source: str = "builtin"

    def __post_init__(self):
        if not self.id or not isinstance(self.id, str):
            raise ConfigurationError(f"Rule id must be a non-empty string, got {self.id!r}")
        if not self.message:
            raise ConfigurationError(f"Rule {self.id} has no message")
        # Frozen dataclass: normalize string enums in place
        object.__setattr__(self, "category", Category.parse(self.category))
        object.__setattr__(self, "severity", Severity.parse(self.severity))

    @property
    def kind(self) -> str:
        raise NotImplementedError

    def applies_to(self, path: str) -> bool:
        return self.should_check is None or bool(self.should_check(path))

    def evaluate(self, content: str, lines: list[str], path: str) -> list[Finding]:
        raise NotImplementedError

    def finding(
        self,
        path: str,
        lines: list[str],
        line: int,
        column: int = 1,
        message: str | None = None,
        suggestion: str | None = None,
        severity: Severity | str | None = None,
        excerpt: str | None = None,
    ) -> Finding:
        """Build a Finding for this rule, defaulting to the rule's own metadata."""
        return Finding(
            rule=self.id,
            category=self.category,
            severity=Severity.parse(severity) if severity is not None else self.severity,
            message=message or self.message,
            line=line,
            column=column,
            excerpt=excerpt if excerpt is not None else excerpt_at(lines, line),
            suggestion=suggestion if suggestion is not None else self.suggestion,
            file=path,
        )

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "suggestion": self.suggestion,
            "fixable": self.fixable,
            "source": self.source,
        }


@dataclass(frozen=True, kw_only=True)
class PatternRule(Rule):
    """Regex detector: every match in the file is one finding."""
    pattern: re.Pattern

    def __post_init__(self):
        super().__post_init__()
        if isinstance(self.pattern, str):
            object.__setattr__(self, "pattern", re.compile(self.pattern))
        if not isinstance(self.pattern, re.Pattern):
            raise ConfigurationError(f"Rule {self.id} pattern must be a regex")

    @property
    def kind(self) -> str:
        return "pattern"

    def applies_to(self, path: str) -> bool:
        return is_source_file(path) and super().applies_to(path)

    def evaluate(self, content: str, lines: list[str], path: str) -> list[Finding]:
        findings = []
        for match in self.pattern.finditer(content):
            line, column = line_col(content, match.start())
            findings.append(self.finding(path, lines, line, column))
        return findings


@dataclass(frozen=True, kw_only=True)
class StructuralRule(Rule):
    """Callback detector receiving the content, its lines and the file path."""
    check: CheckFunction = field(compare=False)

    def __post_init__(self):
        super().__post_init__()
        if not callable(self.check):
            raise ConfigurationError(f"Rule {self.id} check must be callable")

    @property
    def kind(self) -> str:
        return "structural"

    def evaluate(self, content: str, lines: list[str], path: str) -> list[Finding]:
        return list(self._to_findings(self.check(content, lines, path) or (), lines, path))

    def _to_findings(self, results: CheckResult, lines: list[str], path: str) -> Iterator[Finding]:
        for result in results:
            if isinstance(result, Finding):
                yield result
            elif isinstance(result, Hit):
                yield self.finding(
                    path, lines, result.line, result.column,
                    message=result.message,
                    suggestion=result.suggestion,
                    severity=result.severity,
                    excerpt=result.excerpt,
                )
            elif isinstance(result, dict):
                data = {"rule": self.id, "category": self.category.value,
                        "severity": self.severity.value, "message": self.message,
                        "suggestion": self.suggestion, "file": path, **result}
                yield Finding.from_dict(data)
            else:
                raise TypeError(f"Rule {self.id} returned unsupported result {result!r}")


def rule_from_dict(data: dict[str, Any], source: str = "builtin") -> Rule:
    """Create a rule from a mapping, as plugins supply them.

    Exactly one of ``pattern`` or ``check`` (alias ``checkFunction``) must be set.
    """
    for key in ("id", "category", "severity", "message"):
        if not data.get(key):
            raise ConfigurationError(f"Rule definition missing {key!r}: {data.get('id', data)!r}")

    check = data.get("check") or data.get("checkFunction")
    pattern = data.get("pattern")
    if bool(check) == bool(pattern):
        raise ConfigurationError(
            f"Rule {data['id']} must define exactly one of 'pattern' or 'check'"
        )

    common = dict(
        id=data["id"],
        category=data["category"],
        severity=data["severity"],
        message=data["message"],
        suggestion=data.get("suggestion", ""),
        should_check=data.get("should_check") or data.get("shouldCheck"),
        fixable=bool(data.get("fixable", False)),
        source=source,
    )
    if pattern:
        return PatternRule(pattern=pattern, **common)
    return StructuralRule(check=check, **common)
