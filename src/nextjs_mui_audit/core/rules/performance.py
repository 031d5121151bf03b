"""Performance rules: client boundaries, bundle weight and re-render hygiene."""
import re
from typing import Iterator

from .base import Hit, PatternRule, StructuralRule, line_col
from .nextjs import CLIENT_DIRECTIVE

CLIENT_ONLY_HOOKS = re.compile(r"\b(?:useEffect|useLayoutEffect|useState|useReducer)\b")
BROWSER_GLOBALS = re.compile(r"\b(?:window|document|localStorage|sessionStorage)\b")
CLIENT_ONLY_LIBS = re.compile(
    r"""from\s+['"](?:framer-motion|react-hot-toast|react-use|swiper|chart\.js"""
    r"""|@mui/x-date-pickers|@mui/x-charts)['"]"""
)
DYNAMIC_NO_SSR = re.compile(
    r"dynamic\s*\(\s*\(\)\s*=>\s*import\([^)]*\)\s*,\s*\{\s*ssr:\s*false\s*\}\s*\)"
)
HOOK_WITH_CALLBACK = re.compile(r"\b(useEffect|useCallback|useMemo)\s*\(")


def check_client_heavy(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    count = len(CLIENT_DIRECTIVE.findall(content))
    if count > 5:
        yield Hit(
            line=1,
            message=f"File has {count} client components",
            excerpt='Multiple "use client" directives detected',
        )


def check_rsc_boundaries(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Server Components (no "use client") must not touch client-only APIs."""
    if CLIENT_DIRECTIVE.search(content):
        return

    checks = (
        (CLIENT_ONLY_HOOKS, "Client hook used inside a Server Component. Add \"use client\" or refactor.",
         "Move client-only logic to a Client Component"),
        (BROWSER_GLOBALS, "Browser global used in a Server Component",
         "Isolate browser access behind a client boundary"),
        (CLIENT_ONLY_LIBS, "Client-only library imported in a Server Component",
         "Create a \"use client\" wrapper component or load it with next/dynamic"),
    )
    for pattern, message, suggestion in checks:
        match = pattern.search(content)
        if match:
            line, column = line_col(content, match.start())
            yield Hit(line=line, column=column, message=message, suggestion=suggestion)

    match = DYNAMIC_NO_SSR.search(content)
    if match:
        line, column = line_col(content, match.start())
        yield Hit(
            line=line,
            column=column,
            severity="warning",
            message="dynamic(..., { ssr: false }) should be a last resort",
            suggestion="Prefer moving client-only parts into a Client Component and keep SSR",
        )


def check_memoization(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    is_memoized = re.search(r"\bReact\.memo\b|\bmemo\(", content)
    has_props = re.search(r"\bprops\b|Props\b", content)
    if has_props and not is_memoized and len(lines) >= 50:
        yield Hit(line=1, message="Component should be wrapped with React.memo",
                  excerpt="Component with props not memoized")


def _call_arguments(content: str, open_paren: int) -> str | None:
    """Text between a call's parentheses, or None if they never balance."""
    depth = 0
    for i in range(open_paren, len(content)):
        if content[i] in "([{":
            depth += 1
        elif content[i] in ")]}":
            depth -= 1
            if depth == 0:
                return content[open_paren + 1:i]
    return None


def check_dependency_arrays(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """useEffect/useCallback/useMemo called without a trailing dependency array."""
    for match in HOOK_WITH_CALLBACK.finditer(content):
        arguments = _call_arguments(content, match.end() - 1)
        if arguments is None:
            continue
        if re.search(r",\s*\[[^\]]*\]\s*$", arguments) or re.search(r",\s*\w+\s*$", arguments):
            continue
        line, column = line_col(content, match.start())
        yield Hit(line=line, column=column, message=f"{match.group(1)} missing dependency array")


EXPENSIVE_CALL = re.compile(r"\.(?:sort|filter|reduce)\s*\(|\bJSON\.(?:parse|stringify)\s*\(")
MEMO_HOOK = re.compile(r"\b(?:useMemo|useCallback)\s*\(")


def _memoized_spans(content: str) -> list[tuple[int, int]]:
    spans = []
    for match in MEMO_HOOK.finditer(content):
        arguments = _call_arguments(content, match.end() - 1)
        end = match.end() + len(arguments) if arguments is not None else len(content)
        spans.append((match.end(), end))
    return spans


def check_expensive_operations(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """sort/filter/reduce and JSON round-trips outside useMemo or useCallback."""
    spans = _memoized_spans(content)
    for match in EXPENSIVE_CALL.finditer(content):
        if any(start <= match.start() < end for start, end in spans):
            continue
        line, column = line_col(content, match.start())
        operation = match.group().lstrip(".").rstrip("( ")
        yield Hit(line=line, column=column, message=f"Expensive operation detected: {operation}")


RULES = [
    StructuralRule(
        id="perf/client-heavy",
        category="performance",
        severity="warning",
        message="Too many client components may impact performance",
        suggestion="Consider converting some components to Server Components",
        check=check_client_heavy,
    ),
    PatternRule(
        id="perf/dynamic-imports",
        category="performance",
        severity="info",
        message="Consider using dynamic imports for large components",
        suggestion="Use next/dynamic for code splitting large libraries",
        pattern=re.compile(
            r"""import\s+.*\s+from\s+['"](?:react-chartjs-2|recharts|react-big-calendar"""
            r"""|react-leaflet|@monaco-editor/react|react-quill)['"]"""
        ),
    ),
    StructuralRule(
        id="perf/rsc-boundaries",
        category="performance",
        severity="error",
        message='Server Component importing client-only APIs or using client hooks without "use client"',
        suggestion='Add "use client" or move client-only code behind a client boundary',
        check=check_rsc_boundaries,
        should_check=lambda path: "/app/" in f"/{path}" and "node_modules" not in path,
    ),
    PatternRule(
        id="perf/bundle-size",
        category="performance",
        severity="warning",
        message="Large import detected - consider code splitting",
        suggestion="Import only what you need or lazy-load the library",
        pattern=re.compile(
            r"""import\s+.*\s+from\s+['"](?:lodash|moment|date-fns|chart\.js|d3|three|framer-motion)['"]""",
            re.IGNORECASE,
        ),
    ),
    StructuralRule(
        id="perf/memoization",
        category="performance",
        severity="warning",
        message="Component should be memoized to prevent unnecessary re-renders",
        suggestion="Wrap the component with React.memo",
        check=check_memoization,
        should_check=lambda path: "components/" in path,
    ),
    StructuralRule(
        id="perf/expensive-operations",
        category="performance",
        severity="warning",
        message="Expensive operation detected in render",
        suggestion="Move expensive operations outside render or wrap them in useMemo/useCallback",
        check=check_expensive_operations,
        should_check=lambda path: "components/" in path,
    ),
    StructuralRule(
        id="perf/dependency-array",
        category="performance",
        severity="warning",
        message="useEffect or useCallback missing dependency array",
        suggestion="Add a dependency array to avoid re-running on every render",
        check=check_dependency_arrays,
    ),
]
