"""Accessibility rules."""
import re
from typing import Iterator

from .base import TAG_ATTRS as ATTRS
from .base import Hit, PatternRule, StructuralRule, line_col

# Elements that are keyboard accessible on their own
NATIVE_INTERACTIVE = r"(?:button|a|input|select|textarea|Button|IconButton|Link|MenuItem|Tab)"
LABEL_ATTRS = r"\b(?:aria-label|aria-labelledby|title)="
ICON_ONLY = r">\s*<[A-Z]\w*Icon\b"

# Hand-rolled dialogs; MUI Dialog and Modal manage focus and Escape themselves
CUSTOM_DIALOG = re.compile(
    r"""\brole=["'](?:alert)?dialog["']|\baria-modal\b"""
    r"""|\bclassName=["'][^"']*\b(?:modal|dialog|popup)\b"""
)
ESCAPE_HANDLING = re.compile(r"""['"](?:Escape|Esc)['"]|\bkeyCode\s*===?\s*27\b|\bwhich\s*===?\s*27\b""")
TAB_HANDLING = re.compile(
    r"""['"]Tab['"]|\bkeyCode\s*===?\s*9\b|\bFocusTrap\b|\bFocusLock\b|focus-trap|react-focus-lock"""
)


def check_keyboard_traps(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Custom dialogs must close on Escape and keep Tab focus inside."""
    dialog = CUSTOM_DIALOG.search(content)
    if dialog is None:
        return
    line, column = line_col(content, dialog.start())
    if not ESCAPE_HANDLING.search(content):
        yield Hit(
            line=line,
            column=column,
            message="Modal component missing Escape key handler",
            suggestion='Close the dialog on Escape: onKeyDown={(e) => e.key === "Escape" && onClose()}',
        )
    if not TAB_HANDLING.search(content):
        yield Hit(
            line=line,
            column=column,
            severity="warning",
            message="Modal component should handle Tab key navigation",
            suggestion="Trap Tab focus inside the dialog, or use the MUI Dialog/Modal components",
        )


RULES = [
    PatternRule(
        id="a11y/missing-alt",
        category="accessibility",
        severity="error",
        message="Image missing alt attribute",
        suggestion="Add an alt attribute for screen readers (alt=\"\" for decorative images)",
        pattern=re.compile(r"<(?:img|Image)\b(?!" + ATTRS + r"\balt=)" + ATTRS + ">"),
        fixable=True,
    ),
    PatternRule(
        id="a11y/button-label",
        category="accessibility",
        severity="error",
        message="Button missing accessible label",
        suggestion="Add text content or aria-label to the button",
        pattern=re.compile(r"<button\b(?!" + ATTRS + r"\baria-label(?:ledby)?=)" + ATTRS + r">\s*</button>"),
    ),
    PatternRule(
        id="a11y/form-labels",
        category="accessibility",
        severity="warning",
        message="Form input missing label",
        suggestion="Add a <label htmlFor> or aria-label for form accessibility",
        pattern=re.compile(
            r"<input\b(?!" + ATTRS + r"\b(?:aria-label|aria-labelledby|id)=)"
            r"(?!" + ATTRS + r"""\btype=["']hidden["'])""" + ATTRS + ">"
        ),
    ),
    PatternRule(
        id="a11y/aria-labels",
        category="accessibility",
        severity="warning",
        message="Interactive elements should have proper ARIA labels",
        suggestion="Add aria-label, aria-labelledby, or title attribute for screen readers",
        pattern=re.compile(
            # Icon-only buttons, empty or icon-only links, unlabeled select/textarea
            r"<(?:button|IconButton)\b(?!" + ATTRS + LABEL_ATTRS + ")" + ATTRS + ICON_ONLY
            + r"|<a\b(?!" + ATTRS + LABEL_ATTRS + ")" + ATTRS
            + r"(?:/>|>\s*(?:<[A-Z]\w*Icon\b[^<>]*/>\s*)?</a>)"
            + r"|<(?:select|textarea)\b(?!" + ATTRS + r"\b(?:aria-label|aria-labelledby|title|id)=)" + ATTRS + ">"
        ),
        should_check=lambda path: "components/" in path,
    ),
    PatternRule(
        id="a11y/semantic-html",
        category="accessibility",
        severity="info",
        message="Clickable <div> instead of a semantic element",
        suggestion='Use <button> or add role="button" for clickable divs',
        pattern=re.compile(r"<div\b(?!" + ATTRS + r"\brole=)" + ATTRS + r"\bonClick="),
    ),
    PatternRule(
        id="a11y/semantic-structure",
        category="accessibility",
        severity="info",
        message="Consider using semantic HTML elements for better accessibility",
        suggestion="Use <button>, <nav>, <header>, <main>, <footer> or <aside> instead of generic elements",
        pattern=re.compile(
            r"<span\b(?!" + ATTRS + r"\brole=)" + ATTRS + r"\bonClick="
            + r"|<div\b" + ATTRS
            + r"""\b(?:className|id)=["'](?:[^"']*\s)?(?:nav|navbar|header|footer|main|sidebar)(?:[\s"'])"""
        ),
    ),
    PatternRule(
        id="a11y/keyboard-navigation",
        category="accessibility",
        severity="warning",
        message="Interactive element missing keyboard support",
        suggestion="Add onKeyDown and tabIndex, or use a natively focusable element",
        pattern=re.compile(
            rf"<(?!{NATIVE_INTERACTIVE}\b)[A-Za-z][\w.]*\b"
            r"(?!" + ATTRS + r"\b(?:onKeyDown|onKeyUp|onKeyPress|tabIndex)=)" + ATTRS + r"\bonClick="
        ),
    ),
    StructuralRule(
        id="a11y/keyboard-traps",
        category="accessibility",
        severity="error",
        message="Keyboard navigation must not create focus traps",
        suggestion="Handle Escape and Tab in custom dialogs, or use MUI Dialog",
        check=check_keyboard_traps,
    ),
    PatternRule(
        id="a11y/color-contrast",
        category="accessibility",
        severity="warning",
        message="Hardcoded colors may have insufficient contrast",
        suggestion="Use theme colors or verify contrast ratios meet WCAG guidelines",
        pattern=re.compile(r"#[0-9a-fA-F]{3,6}\b|rgba?\("),
        should_check=lambda path: "components/" in path,
    ),
]
