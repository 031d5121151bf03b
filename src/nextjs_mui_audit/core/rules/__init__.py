"""Rule catalog for Next.js + MUI source audits."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Iterator

from nextjs_mui_audit.errors import ConfigurationError

from . import accessibility, mui, nextjs, performance, quality, responsive, security, seo, testing
from .base import Hit, PatternRule, Rule, StructuralRule, rule_from_dict

if TYPE_CHECKING:
    from nextjs_mui_audit.core.plugins import PluginHost

logger = logging.getLogger(__name__)

# Built-in rules, grouped by category module
BUILTIN_RULES: list[Rule] = [
    *nextjs.RULES,
    *mui.RULES,
    *accessibility.RULES,
    *performance.RULES,
    *security.RULES,
    *quality.RULES,
    *responsive.RULES,
    *seo.RULES,
    *testing.RULES,
]


class RuleCatalog:
    """Immutable registry of rules keyed by id.

    Plugins extend a catalog by building a new one with ``extend()``;
    an existing catalog is never mutated.
    """

    def __init__(self, rules: Iterable[Rule]):
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            if not isinstance(rule, Rule):
                raise ConfigurationError(f"Not a rule: {rule!r}")
            if rule.id in self._rules:
                existing = self._rules[rule.id]
                raise ConfigurationError(
                    f"Duplicate rule id {rule.id!r} (from {rule.source}, already defined by {existing.source})"
                )
            self._rules[rule.id] = rule

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def list_rules(self) -> list[Rule]:
        return list(self._rules.values())

    def find_rule(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    def fixable_rules(self) -> list[Rule]:
        return [rule for rule in self._rules.values() if rule.fixable]

    def extend(self, rules: Iterable[Rule]) -> "RuleCatalog":
        return RuleCatalog([*self._rules.values(), *rules])

    def describe(self) -> dict[str, str]:
        return {rule_id: rule.message for rule_id, rule in self._rules.items()}


def build_catalog(plugins: "PluginHost | None" = None) -> RuleCatalog:
    """Built-in rules merged with everything the loaded plugins contribute."""
    catalog = RuleCatalog(BUILTIN_RULES)
    if plugins is not None:
        extra = plugins.rules
        if extra:
            logger.debug(f"Adding {len(extra)} plugin rule(s) to the catalog")
            catalog = catalog.extend(extra)
    return catalog


__all__ = [
    "BUILTIN_RULES",
    "Hit",
    "PatternRule",
    "Rule",
    "RuleCatalog",
    "StructuralRule",
    "build_catalog",
    "rule_from_dict",
]
