"""Minimal JSX scanning helpers used by the fix transforms.

These are not a parser. They understand just enough (quoted strings,
template literals, brace nesting, tag boundaries) to find the region a
transform may rewrite, and report None whenever a region is ambiguous.
"""
import re

QUOTES = "'\"`"
IMPORT_STATEMENT = re.compile(r"""^import\b[^;]*?['"][^'"\n]+['"][ \t]*;?[ \t]*$""", re.MULTILINE | re.DOTALL)
TAG_NAME = re.compile(r"<([A-Za-z][\w.]*)")


def skip_string(text: str, start: int) -> int | None:
    """Index just past the string literal opening at ``start``, or None if unterminated."""
    quote = text[start]
    i = start + 1
    while i < len(text):
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == quote:
            return i + 1
        if char == "\n" and quote != "`":
            return None
        i += 1
    return None


def matching_brace(text: str, open_index: int) -> int | None:
    """Index of the ``}`` closing the ``{`` at open_index, skipping string contents."""
    if open_index >= len(text) or text[open_index] != "{":
        return None
    depth = 0
    i = open_index
    while i < len(text):
        char = text[i]
        if char in QUOTES:
            end = skip_string(text, i)
            if end is None:
                return None
            i = end
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def tag_end(text: str, start: int) -> int | None:
    """Index of the ``>`` closing the opening tag that starts at ``start``.

    Attribute strings and ``{...}`` expressions are skipped, so ``=>``
    inside an event handler does not end the tag.
    """
    i = start + 1
    while i < len(text):
        char = text[i]
        if char in "'\"":
            end = skip_string(text, i)
            if end is None:
                return None
            i = end
            continue
        if char == "{":
            close = matching_brace(text, i)
            if close is None:
                return None
            i = close + 1
            continue
        if char == ">":
            return i
        if char == "<":
            return None
        i += 1
    return None


def enclosing_tag(text: str, index: int) -> tuple[int, int] | None:
    """(start, end) of the opening tag whose attributes contain ``index``."""
    start = text.rfind("<", 0, index)
    while start != -1:
        if TAG_NAME.match(text, start):
            end = tag_end(text, start)
            if end is not None and end > index:
                return start, end
            return None
        start = text.rfind("<", 0, start)
    return None


def tag_name(tag: str) -> str:
    match = TAG_NAME.match(tag)
    return match.group(1) if match else ""


def has_attribute(tag: str, name: str) -> bool:
    return re.search(rf"(?<![\w-]){re.escape(name)}(?==|[\s/>])", tag) is not None


def has_spread(tag: str) -> bool:
    return re.search(r"\{\s*\.\.\.", tag) is not None


def insert_attributes(tag: str, attributes: str) -> str:
    """Append attributes before the tag's closing ``/>`` or ``>``."""
    if tag.endswith("/>"):
        return f"{tag[:-2].rstrip()} {attributes} />"
    return f"{tag[:-1].rstrip()} {attributes}>"


def import_insertion_point(content: str) -> int:
    """Offset just after the last top-level import, or after a leading directive."""
    last_end = None
    for match in IMPORT_STATEMENT.finditer(content):
        last_end = match.end()
    if last_end is not None:
        return last_end

    directive = re.match(r"""\s*(["'])use (?:client|server)\1;?[ \t]*(?:\n|$)""", content)
    if directive:
        return directive.end()
    return 0


def add_import(content: str, statement: str) -> str:
    """Insert an import statement once, after existing imports."""
    if statement in content:
        return content
    position = import_insertion_point(content)
    if position == 0:
        return f"{statement}\n{content}"
    if content[position - 1] == "\n":
        return f"{content[:position]}{statement}\n{content[position:]}"
    return f"{content[:position]}\n{statement}{content[position:]}"
