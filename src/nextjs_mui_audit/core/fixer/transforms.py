"""Text transforms registered for fixable rules.

Each transform takes ``(content, issue)`` and rewrites every safe occurrence
in the file at once. The built-in transforms return a TransformOutcome that
records what happened at each occurrence, so the engine can report refused
occurrences as skips. Registered transforms may also return plain content.

When occurrences exist but none can be rewritten safely, a transform raises
UnsafeTransformError.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Union

from nextjs_mui_audit.core.models import Finding
from nextjs_mui_audit.core.rules.base import line_col
from nextjs_mui_audit.core.rules.mui import COLOR_LITERAL, SPACING_LITERAL, check_theme_tokens
from nextjs_mui_audit.core.rules.nextjs import CLIENT_DIRECTIVE, uses_client_features
from nextjs_mui_audit.errors import UnsafeTransformError

from .jsx import (
    add_import,
    enclosing_tag,
    has_attribute,
    has_spread,
    insert_attributes,
    matching_brace,
    tag_end,
    tag_name,
)

ALREADY_FIXED = "Already in target form"


def unsafe_reason(detail: str) -> str:
    return f"Unsafe to rewrite: {detail}"


@dataclass(frozen=True)
class Occurrence:
    """One place a transform looked at. ``skip_reason`` is None when it was rewritten."""
    line: int
    column: int
    skip_reason: str | None = None


@dataclass
class TransformOutcome:
    content: str
    occurrences: list[Occurrence] = field(default_factory=list)

    def skip_reason_for(self, issue: Finding) -> str | None:
        """Why the occurrence behind ``issue`` was left alone, or None if it was rewritten.

        Issues are matched on (line, column), then on line. An issue that
        matches no occurrence counts as fixed when anything was rewritten.
        """
        candidates = (
            [o for o in self.occurrences if (o.line, o.column) == (issue.line, issue.column)]
            or [o for o in self.occurrences if o.line == issue.line]
            or self.occurrences
        )
        if not candidates or any(o.skip_reason is None for o in candidates):
            return None
        return candidates[0].skip_reason


Transform = Callable[[str, Finding], Union[str, TransformOutcome]]
Rewrite = Callable[[int], "tuple[int, int, str] | str | None"]

INLINE_STYLE = re.compile(r"(?<![\w-])style=\{\{")
IMG_TAG = re.compile(r"<img\b")
ALT_TARGET = re.compile(r"<(?:img|Image)\b")
GRID_TAG = re.compile(r"<Grid\b")
SX_PROP = re.compile(r"(?<![\w-])sx=\{")
BREAKPOINT_PROPS = ("xs", "sm", "md", "lg", "xl", "size")

IMAGE_IMPORT = "import Image from 'next/image'"
NEXT_IMAGE_IMPORT = re.compile(r"""import\s+Image\b[^;'"]*?\bfrom\s+['"]next/image['"]""")
IMPORT_CLAUSE = re.compile(r"""^[ \t]*import\s+([^'";]+?)\s+from\s+['"]([^'"]+)['"]""", re.MULTILINE)
# "Image" bound by an import clause; "Image as Img" binds Img instead
IMAGE_IN_CLAUSE = re.compile(r"(?<![\w$.])Image\b(?!\s+as\b)")
LOCAL_IMAGE = re.compile(r"\b(?:const|let|var|function|class)\s+Image\b")
DEFAULT_IMAGE_SIZE = (500, 300)

SPACING_UNIT_PX = 8
THEME_LITERAL = re.compile(f"{COLOR_LITERAL.pattern}|{SPACING_LITERAL.pattern}")
PX_LITERAL = re.compile(r"(\d+(?:\.\d+)?)px")
PROPERTY_COLON = re.compile(r":\s*$")

# Default MUI palette main colors
PALETTE_COLORS = {
    "#1976d2": "primary",
    "#dc004e": "secondary",
    "#9c27b0": "secondary",
    "#f44336": "error",
    "#d32f2f": "error",
    "#ff9800": "warning",
    "#ed6c02": "warning",
    "#2196f3": "info",
    "#0288d1": "info",
    "#4caf50": "success",
    "#2e7d32": "success",
}


def _rewrite_regions(content: str, starts: list[int], rewrite: Rewrite) -> TransformOutcome:
    """Apply per-occurrence rewrites back to front so earlier offsets stay valid.

    ``rewrite(start)`` returns (start, end, replacement), None when that
    occurrence is already in target form, or a string naming why it is
    unsafe. Raises UnsafeTransformError if no occurrence can be rewritten
    and at least one is unsafe.
    """
    edits = []
    occurrences = []
    refused = []
    for start in starts:
        outcome = rewrite(start)
        line, column = line_col(content, start)
        if outcome is None:
            occurrences.append(Occurrence(line, column, ALREADY_FIXED))
        elif isinstance(outcome, str):
            refused.append(outcome)
            occurrences.append(Occurrence(line, column, unsafe_reason(outcome)))
        else:
            edits.append(outcome)
            occurrences.append(Occurrence(line, column))

    if not edits and refused:
        raise UnsafeTransformError(refused[0])

    for begin, end, replacement in sorted(edits, reverse=True):
        content = content[:begin] + replacement + content[end:]
    return TransformOutcome(content, occurrences)


def inline_styles_to_sx(content: str, issue: Finding) -> TransformOutcome:
    """``style={{...}}`` -> ``sx={{...}}`` on capitalized (component) tags."""

    def rewrite(start: int):
        open_brace = start + len("style=")
        if matching_brace(content, open_brace) is None:
            return "unbalanced braces in style prop"
        bounds = enclosing_tag(content, start)
        if bounds is None:
            return "could not locate the enclosing tag"
        tag = content[bounds[0]:bounds[1] + 1]
        name = tag_name(tag)
        if not name[:1].isupper():
            return f"<{name}> is a DOM element; sx only works on MUI components"
        if SX_PROP.search(tag):
            return f"<{name}> already has an sx prop"
        return start, start + len("style"), "sx"

    return _rewrite_regions(content, [m.start() for m in INLINE_STYLE.finditer(content)], rewrite)


def has_conflicting_image_binding(content: str) -> bool:
    """True when something other than next/image binds the name Image."""
    for match in IMPORT_CLAUSE.finditer(content):
        clause, source = match.groups()
        if source != "next/image" and IMAGE_IN_CLAUSE.search(clause):
            return True
    return LOCAL_IMAGE.search(content) is not None


def img_to_next_image(content: str, issue: Finding) -> TransformOutcome | str:
    """``<img ...>`` -> ``<Image ... width height />`` plus the next/image import."""
    starts = [m.start() for m in IMG_TAG.finditer(content)]
    if not starts:
        return content
    if has_conflicting_image_binding(content):
        raise UnsafeTransformError("another binding named Image already exists")

    def rewrite(start: int):
        end = tag_end(content, start)
        if end is None:
            return "could not find the end of the <img> tag"
        attributes = content[start + len("<img"):end].rstrip()
        if attributes.endswith("/"):
            attributes = attributes[:-1].rstrip()
        tag = f"<Image{attributes}"
        if not re.search(r"(?<![\w-])fill\b", attributes):
            width, height = DEFAULT_IMAGE_SIZE
            if not has_attribute(attributes, "width"):
                tag += f" width={{{width}}}"
            if not has_attribute(attributes, "height"):
                tag += f" height={{{height}}}"
        return start, end + 1, f"{tag} />"

    outcome = _rewrite_regions(content, starts, rewrite)
    if "<Image" in outcome.content and not NEXT_IMAGE_IMPORT.search(outcome.content):
        outcome.content = add_import(outcome.content, IMAGE_IMPORT)
    return outcome


def add_empty_alt(content: str, issue: Finding) -> TransformOutcome:
    """Give images without alt text an empty (decorative) alt attribute."""

    def rewrite(start: int):
        end = tag_end(content, start)
        if end is None:
            return "could not find the end of the image tag"
        tag = content[start:end + 1]
        if has_attribute(tag, "alt"):
            return None
        if has_spread(tag):
            return "tag spreads props that may already carry alt"
        return start, end + 1, insert_attributes(tag, 'alt=""')

    return _rewrite_regions(content, [m.start() for m in ALT_TARGET.finditer(content)], rewrite)


def _theme_token(value: str) -> str | None:
    px = PX_LITERAL.fullmatch(value)
    if px:
        pixels = float(px.group(1))
        return None if pixels % 4 else f"theme.spacing({pixels / SPACING_UNIT_PX:g})"
    color = PALETTE_COLORS.get(value.lower())
    return f"theme.palette.{color}.main" if color else None


def _brace_regions(content: str, prop: re.Pattern) -> tuple[list[tuple[int, int]], list[int]]:
    """(open, close) of each balanced ``prop={...}`` body, plus the offsets of unbalanced ones."""
    regions, unbalanced = [], []
    for match in prop.finditer(content):
        open_brace = match.end() - 1
        close = matching_brace(content, open_brace)
        if close is None:
            unbalanced.append(match.start())
        else:
            regions.append((open_brace, close))
    return regions, unbalanced


def theme_tokens(content: str, issue: Finding) -> TransformOutcome | str:
    """Hardcoded px spacing and palette colors inside sx props -> theme callbacks.

    Every literal the theme-token rule flags is an occurrence. Literals in
    sx bodies that the rule does not flag are converted when a token exists
    and otherwise left alone.
    """
    lines = content.split("\n")
    line_starts = [0]
    for line in lines[:-1]:
        line_starts.append(line_starts[-1] + len(line) + 1)
    flagged = {
        line_starts[hit.line - 1] + hit.column - 1
        for hit in check_theme_tokens(content, lines, "")
    }

    sx_bodies, sx_unbalanced = _brace_regions(content, SX_PROP)
    style_bodies, _ = _brace_regions(content, INLINE_STYLE)
    unflagged = {
        m.start()
        for open_brace, close in sx_bodies
        for m in THEME_LITERAL.finditer(content, open_brace, close)
    } - flagged
    starts = sorted(flagged | unflagged)
    if not starts:
        return content

    def rewrite(start: int):
        value = THEME_LITERAL.match(content, start).group()
        if not any(open_brace < start < close for open_brace, close in sx_bodies):
            if start not in flagged:
                return None
            if any(open_brace < start < close for open_brace, close in style_bodies):
                return "hardcoded values live in a style prop; convert it to sx first"
            if any(offset < start for offset in sx_unbalanced):
                return "unbalanced braces in sx prop"
            return f"'{value}' is not inside an sx prop"

        quote = content[start - 1:start]
        token = _theme_token(value)
        quoted = quote in ("'", '"') and content.startswith(quote, start + len(value))
        if token is None or not quoted or not PROPERTY_COLON.search(content, 0, start - 1):
            return f"no theme token for '{value}'" if start in flagged else None
        return start - 1, start + len(value) + 1, f"(theme) => {token}"

    return _rewrite_regions(content, starts, rewrite)


def grid_breakpoints(content: str, issue: Finding) -> TransformOutcome:
    """``<Grid item>`` without breakpoints -> ``<Grid item xs={12} md={6}>``."""

    def rewrite(start: int):
        end = tag_end(content, start)
        if end is None:
            return "could not find the end of the <Grid> tag"
        tag = content[start:end + 1]
        if not has_attribute(tag, "item") or any(has_attribute(tag, p) for p in BREAKPOINT_PROPS):
            return None
        if has_spread(tag):
            return "Grid spreads props that may already set breakpoints"
        item = re.search(r"(?<![\w-])item\b", tag)
        updated = f"{tag[:item.end()]} xs={{12}} md={{6}}{tag[item.end():]}"
        return start, end + 1, updated

    return _rewrite_regions(content, [m.start() for m in GRID_TAG.finditer(content)], rewrite)


def remove_client_directive(content: str, issue: Finding) -> str:
    """Drop a "use client" directive from a file with no client-only features."""
    match = CLIENT_DIRECTIVE.search(content)
    if match is None:
        return content
    if uses_client_features(content):
        raise UnsafeTransformError("file uses hooks, event handlers or browser globals")
    end = match.end()
    # Take the directive's newline and one blank line after it
    for _ in range(2):
        if content.startswith("\n", end):
            end += 1
    return content[:match.start()] + content[end:]


BUILTIN_TRANSFORMS: dict[str, tuple[str, Transform]] = {
    "mui/inline-styles": ("Converted inline style prop to sx", inline_styles_to_sx),
    "next/image-usage": ("Replaced <img> with next/image Image component", img_to_next_image),
    "a11y/missing-alt": ('Added empty alt="" to images without alt text', add_empty_alt),
    "mui/theme-token-enforcement": ("Replaced hardcoded values with theme tokens", theme_tokens),
    "mui/responsive-design": ("Added responsive breakpoints to Grid items", grid_breakpoints),
    "next/client-directive": ('Removed unnecessary "use client" directive', remove_client_directive),
}
