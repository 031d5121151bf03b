"""Code quality rules, including TypeScript and React hooks checks."""
import re
from typing import Iterator

from .base import Hit, PatternRule, StructuralRule, line_col

MAX_FILE_LINES = 200
MAX_COMPLEXITY = 10

FUNCTION_START = re.compile(
    r"\bfunction\s+\w+\s*\([^)]*\)\s*(?::[^{]*)?\{"
    r"|\bconst\s+\w+\s*=\s*(?:async\s*)?\([^)]*\)\s*(?::[^=]*)?=>\s*\{"
    r"|\bconst\s+\w+\s*=\s*(?:async\s+)?function\s*\([^)]*\)\s*\{"
)
BRANCH_POINTS = re.compile(r"\b(?:if|for|while|case|catch)\b|&&|\|\||\?(?![.?])")
HOOK_CALL = re.compile(r"\buse[A-Z]\w*\s*\(")
CONDITIONAL_BLOCK = re.compile(r"\b(?:if|else|for|while|switch|do)\b[^{;]*$")


def _block_end(content: str, open_brace: int) -> int:
    """Index of the brace closing the block at open_brace (end of content if unbalanced)."""
    depth = 0
    for i in range(open_brace, len(content)):
        if content[i] == "{":
            depth += 1
        elif content[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return len(content)


def check_file_size(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    if len(lines) > MAX_FILE_LINES:
        yield Hit(
            line=1,
            message=f"File is too large ({len(lines)} lines)",
            excerpt=f"File contains {len(lines)} lines",
        )


def check_function_complexity(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    for match in FUNCTION_START.finditer(content):
        body = content[match.end() - 1:_block_end(content, match.end() - 1)]
        complexity = len(BRANCH_POINTS.findall(body))
        if complexity > MAX_COMPLEXITY:
            line, column = line_col(content, match.start())
            yield Hit(
                line=line,
                column=column,
                message=f"Function has high complexity ({complexity} complexity points)",
                suggestion="Extract branches into helper functions or early returns",
            )


def check_hooks_rules(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Hooks called inside a conditional or loop block.

    Tracks a stack of open blocks, each marked conditional when its opening
    line starts an if/else/for/while/switch/do.
    """
    stack: list[bool] = []
    for number, line in enumerate(lines, 1):
        code = line.split("//", 1)[0]
        for char_index, char in enumerate(code):
            if char == "{":
                stack.append(bool(CONDITIONAL_BLOCK.search(code[:char_index])))
            elif char == "}":
                if stack:
                    stack.pop()
            elif char == "u" and any(stack):
                preceding = code[char_index - 1] if char_index else " "
                if HOOK_CALL.match(code, char_index) and not (preceding.isalnum() or preceding in "_.$"):
                    yield Hit(
                        line=number,
                        column=char_index + 1,
                        message="Hook called inside conditional or loop",
                        suggestion="Move the hook to the top level of the component",
                    )


COMPONENT_DEFINITION = re.compile(
    r"^[ \t]*export\s+(?:default\s+)?(?:function\s+([a-z]\w*)\s*\(|const\s+([a-z]\w*)\s*=)",
    re.MULTILINE,
)
JSX_RETURN = re.compile(r"(?:\breturn|=>)\s*\(?\s*<(?:[A-Za-z][\w.]*|>)")
PROPS_TYPE = re.compile(r"\b(?:interface|type)\s+\w*Props\b|\bProps\s*[:=]|:\s*\w*Props\b|\}\s*:\s*\{")
PROP_TYPES = re.compile(r"\bPropTypes\b|['\"]prop-types['\"]")
COMPONENT_PARAMS = re.compile(
    r"\bfunction\s+[A-Z]\w*\s*\(\s*[^)\s]"
    r"|\bconst\s+[A-Z]\w*\s*=\s*(?:React\.memo\(|memo\()?\s*\(\s*[^)\s]"
)

FUNCTION_SIGNATURE = re.compile(
    r"\bfunction\s+(\w+)\s*(?:<[^>]*>)?\s*\([^)]*\)(\s*:)?"
    r"|\bconst\s+(\w+)\s*=\s*(?:async\s+)?(?:<[^>]*>)?\s*\([^)]*\)(\s*:[^=]*)?\s*=>"
)
EVENT_HANDLER_NAME = re.compile(r"^(?:on|handle)[A-Z]")

IMPORT_LINE = re.compile(r"""^\s*import\b[^'"]*['"]([^'"]+)['"]""")
MIN_IMPORTS_TO_ORDER = 4
MIN_COMPONENT_LINES = 3


def check_component_naming(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Exported camelCase functions that render JSX."""
    definitions = list(COMPONENT_DEFINITION.finditer(content))
    for index, match in enumerate(definitions):
        name = match.group(1) or match.group(2)
        # Body runs up to the next exported definition
        end = definitions[index + 1].start() if index + 1 < len(definitions) else len(content)
        if not JSX_RETURN.search(content, match.end(), end):
            continue
        line, column = line_col(content, match.start(1) if match.group(1) else match.start(2))
        yield Hit(
            line=line,
            column=column,
            message=f"Component '{name}' should use PascalCase",
            suggestion=f"Rename component to '{name[0].upper()}{name[1:]}'",
        )


def check_prop_types(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Components taking props without a Props type (TypeScript) or PropTypes (JavaScript)."""
    params = COMPONENT_PARAMS.search(content)
    if params is None:
        return
    line, column = line_col(content, params.start())
    if path.endswith((".ts", ".tsx")):
        if not PROPS_TYPE.search(content):
            yield Hit(
                line=line,
                column=column,
                message="Component missing Props interface or type definition",
                suggestion="Define a Props interface or type for the component parameters",
            )
    elif not PROP_TYPES.search(content):
        yield Hit(
            line=line,
            column=column,
            message="Component missing PropTypes validation",
            suggestion="Add PropTypes validation or migrate to TypeScript",
        )


def check_explicit_returns(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    for match in FUNCTION_SIGNATURE.finditer(content):
        name = match.group(1) or match.group(3)
        annotated = match.group(2) or match.group(4)
        if annotated or EVENT_HANDLER_NAME.match(name):
            continue
        line, column = line_col(content, match.start())
        yield Hit(
            line=line,
            column=column,
            message=f"Function '{name}' should have explicit return type",
            suggestion=f"Add a return type annotation: {name}(...): ReturnType",
        )


def _import_group(source: str) -> int:
    """0 for react, 1 for external packages, 2 for internal modules."""
    if source == "react" or source.startswith("react/") or source == "react-dom":
        return 0
    if source.startswith((".", "@/", "~/")):
        return 2
    return 1


def check_import_order(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Imports ordered React, then external packages, then internal modules."""
    imports = []
    for number, line in enumerate(lines, 1):
        match = IMPORT_LINE.match(line)
        if match:
            imports.append((number, _import_group(match.group(1))))
    if len(imports) < MIN_IMPORTS_TO_ORDER:
        return

    highest = 0
    for number, group in imports:
        if group < highest:
            yield Hit(
                line=number,
                message="Imports should be ordered: React -> External -> Internal",
                suggestion="Put React imports first, then external packages, then internal modules",
            )
            return
        highest = group


def check_component_structure(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    if path.rsplit("/", 1)[-1].startswith("index.") or len(lines) < MIN_COMPONENT_LINES:
        return
    missing = [
        part for part, present in (
            ("imports", re.search(r"^\s*import\b", content, re.MULTILINE)),
            ("component definition", re.search(r"\b(?:function|const|class)\s+[A-Z]\w*", content)),
            ("export", re.search(r"^\s*export\b", content, re.MULTILINE)),
        )
        if not present
    ]
    if missing:
        yield Hit(
            line=1,
            message=f"Component missing standard structure elements: {', '.join(missing)}",
            excerpt="Incomplete component structure",
        )


RULES = [
    PatternRule(
        id="quality/console-usage",
        category="quality",
        severity="warning",
        message="Console statement in production code",
        suggestion="Remove console statements or use a logging library",
        pattern=re.compile(r"\bconsole\.(?:log|warn|error|info|debug)\s*\("),
    ),
    PatternRule(
        id="quality/relative-imports",
        category="quality",
        severity="info",
        message="Deep relative imports detected",
        suggestion="Use absolute imports with path aliases (@/components/...)",
        pattern=re.compile(r"""from\s+['"](?:\.\./){4,}"""),
    ),
    StructuralRule(
        id="quality/file-size",
        category="quality",
        severity="warning",
        message="File is too large",
        suggestion="Split large files into smaller, focused modules",
        check=check_file_size,
    ),
    StructuralRule(
        id="quality/function-complexity",
        category="quality",
        severity="warning",
        message="Function is too complex (high cyclomatic complexity)",
        suggestion="Extract branches into helper functions or early returns",
        check=check_function_complexity,
    ),
    PatternRule(
        id="typescript/any-usage",
        category="quality",
        severity="error",
        message="Avoid the any type",
        suggestion="Use a specific type, a generic, or unknown",
        pattern=re.compile(r":\s*any\b|\bas\s+any\b|<any>"),
        should_check=lambda path: path.endswith((".ts", ".tsx")),
    ),
    StructuralRule(
        id="react/hooks-rules",
        category="quality",
        severity="error",
        message="React hooks rules violation detected",
        suggestion="Call hooks only at the top level of a component or custom hook",
        check=check_hooks_rules,
    ),
    StructuralRule(
        id="typescript/explicit-returns",
        category="quality",
        severity="warning",
        message="Function should have explicit return type annotation",
        suggestion="Add a return type annotation: function name(): ReturnType",
        check=check_explicit_returns,
        should_check=lambda path: path.endswith((".ts", ".tsx")),
    ),
    StructuralRule(
        id="react/component-naming",
        category="quality",
        severity="warning",
        message="Component should follow PascalCase naming convention",
        suggestion="Rename the component to PascalCase",
        check=check_component_naming,
        should_check=lambda path: "components/" in path,
    ),
    StructuralRule(
        id="react/prop-types",
        category="quality",
        severity="warning",
        message="Component missing prop types or TypeScript interface",
        suggestion="Define a Props type or PropTypes for the component",
        check=check_prop_types,
        should_check=lambda path: "components/" in path,
    ),
    StructuralRule(
        id="quality/import-order",
        category="quality",
        severity="info",
        message="Imports should be organized by type",
        suggestion="Put React imports first, then external packages, then internal modules",
        check=check_import_order,
    ),
    StructuralRule(
        id="quality/component-structure",
        category="quality",
        severity="info",
        message="Component should follow consistent structure pattern",
        suggestion="Follow standard component structure: imports -> component definition -> export",
        check=check_component_structure,
        should_check=lambda path: "components/" in path,
    ),
]
