"""Responsive design rules."""
import re
from typing import Iterator

from .base import Hit, PatternRule, StructuralRule


def is_document_file(path: str) -> bool:
    """Root layouts and custom documents carry the page-level <head> metadata."""
    name = path.rsplit("/", 1)[-1]
    return name.startswith(("layout.", "_document.", "_app."))


def check_viewport(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    if "viewport" not in content:
        yield Hit(line=1, excerpt="No viewport meta tag found")


RULES = [
    PatternRule(
        id="responsive/fixed-dimensions",
        category="responsive",
        severity="warning",
        message="Fixed pixel dimensions may cause responsive issues",
        suggestion="Use relative units (%, rem, vw) or responsive breakpoints",
        pattern=re.compile(r"""(?<![\w-])(?:(?:min|max)-?)?(?:[wW]idth|[hH]eight)\s*:\s*['"]?\d+px\b"""),
    ),
    StructuralRule(
        id="responsive/viewport-meta",
        category="responsive",
        severity="error",
        message="Missing viewport meta tag",
        suggestion='Add <meta name="viewport" content="width=device-width, initial-scale=1"> '
                   "or export a viewport object",
        check=check_viewport,
        should_check=is_document_file,
    ),
]
