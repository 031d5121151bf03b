"""Glob matching for include/ignore patterns.

Supports ``*`` (within one path segment), ``**`` (any depth), ``?``,
character classes and ``{a,b}`` brace alternation. Paths are matched in
POSIX form relative to the scan root.
"""
import fnmatch
import re
from functools import lru_cache

from nextjs_mui_audit.errors import ConfigurationError


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternation (nested groups allowed)."""
    start = pattern.find("{")
    if start == -1:
        if "}" in pattern:
            raise ConfigurationError(f"Malformed glob {pattern!r}: unmatched '}}'")
        return [pattern]

    depth = 0
    options: list[str] = []
    current = start + 1
    for i in range(start, len(pattern)):
        char = pattern[i]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                options.append(pattern[current:i])
                prefix, suffix = pattern[:start], pattern[i + 1:]
                expanded = []
                for option in options:
                    expanded.extend(expand_braces(prefix + option + suffix))
                return expanded
        elif char == "," and depth == 1:
            options.append(pattern[current:i])
            current = i + 1

    raise ConfigurationError(f"Malformed glob {pattern!r}: unmatched '{{'")


def _translate(pattern: str) -> str:
    """Translate one brace-free glob into a regex body."""
    parts = []
    i = 0
    n = len(pattern)
    while i < n:
        char = pattern[i]
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif char == "*":
            parts.append("[^/]*")
            i += 1
        elif char == "?":
            parts.append("[^/]")
            i += 1
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                raise ConfigurationError(f"Malformed glob {pattern!r}: unmatched '['")
            # fnmatch already knows how to turn a bracket class into regex
            parts.append(fnmatch.translate(pattern[i:end + 1])[4:-3])
            i = end + 1
        else:
            parts.append(re.escape(char))
            i += 1
    return "".join(parts)


def _strip_dot_slash(path: str) -> str:
    while path.startswith("./"):
        path = path[2:]
    return path


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern:
    """Compile a glob (with braces) into an anchored regex."""
    if not isinstance(pattern, str) or not pattern.strip():
        raise ConfigurationError(f"Malformed glob {pattern!r}: empty pattern")
    alternatives = [_translate(p) for p in expand_braces(_strip_dot_slash(pattern.strip()))]
    return re.compile("^(?:" + "|".join(alternatives) + ")$")


class GlobSet:
    """A list of globs matched as a union."""

    def __init__(self, patterns: list[str]):
        self.patterns = list(patterns)
        self._compiled = [compile_glob(p) for p in self.patterns]

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def matches(self, path: str) -> bool:
        path = _strip_dot_slash(path.replace("\\", "/"))
        return any(regex.match(path) for regex in self._compiled)
