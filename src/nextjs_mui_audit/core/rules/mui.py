"""Material UI rules."""
import re
from typing import Iterator

from .base import TAG_ATTRS, Hit, PatternRule, StructuralRule, line_col
from .responsive import is_document_file

COLOR_LITERAL = re.compile(r"#[0-9a-fA-F]{3,8}\b|rgba?\([\d\s.,%]+\)|hsla?\([\d\s.,%]+\)")
SPACING_LITERAL = re.compile(r"\b\d+(?:\.\d+)?(?:px|rem|em)\b")
SPACING_PROPS = re.compile(r"margin|padding|gap|top|left|right|bottom|width|height|spacing", re.IGNORECASE)

ICONS_BULK_IMPORT = re.compile(
    r"""^\s*import\s+(?:\*\s+as\s+\w+|\w+)\s+from\s+['"]@mui/icons-material['"]"""
)
LODASH_DEFAULT_IMPORT = re.compile(r"""^\s*import\s+_\s+from\s+['"]lodash['"]""")

RAW_FORM_ELEMENT = re.compile(r"<(button|input|select|textarea)\b")
MUI_EQUIVALENTS = {
    "button": "<Button>",
    "input": "<TextField>",
    "select": "<Select>",
    "textarea": "<TextField multiline>",
}

EMOTION_SERVER = re.compile(r"\bcreateEmotionServer\b|\bextractCriticalToChunks\b")
NEXT_FONT = re.compile(r"""['"]next/font(?:/\w+)?['"]|\blocalFont\b""")
FONT_PRELOAD = re.compile(r"""rel=["']preload["'][^>]*\bas=["']font["']|\bas=["']font["'][^>]*\brel=["']preload["']""")
GOOGLE_FONTS = re.compile(r"fonts\.googleapis\.com")


def check_theme_tokens(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Hardcoded colors and spacing inside sx/style props."""
    for number, line in enumerate(lines, 1):
        if "sx=" not in line and "style=" not in line and "sx:" not in line:
            continue
        for match in COLOR_LITERAL.finditer(line):
            yield Hit(
                line=number,
                column=match.start() + 1,
                message=f"Hardcoded color '{match.group()}' found. Use theme.palette.* token instead.",
                suggestion="Replace with theme.palette.primary.main, theme.palette.error.main, etc.",
            )
        if not SPACING_PROPS.search(line):
            continue
        for match in SPACING_LITERAL.finditer(line):
            yield Hit(
                line=number,
                column=match.start() + 1,
                message=f"Hardcoded spacing '{match.group()}' found. Use theme.spacing() or the sx scale instead.",
                suggestion="Replace with theme.spacing(2) or sx={{ m: 2, p: 3 }}",
            )


def check_import_guards(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    for number, line in enumerate(lines, 1):
        if ICONS_BULK_IMPORT.match(line):
            yield Hit(
                line=number,
                message="Wildcard or default import from @mui/icons-material causes bundle bloat",
                suggestion='Use named imports: import { Add, Edit } from "@mui/icons-material"',
            )
        elif LODASH_DEFAULT_IMPORT.match(line):
            yield Hit(
                line=number,
                message="Default import from lodash pulls in the entire library",
                suggestion='Use path imports: import debounce from "lodash/debounce"',
            )


def check_component_usage(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Raw form elements in a file that already builds its UI from MUI."""
    if "@mui/" not in content:
        return
    for match in RAW_FORM_ELEMENT.finditer(content):
        line, column = line_col(content, match.start())
        element = match.group(1)
        yield Hit(
            line=line,
            column=column,
            message=f"Raw <{element}> in an MUI component",
            suggestion=f"Use {MUI_EQUIVALENTS[element]} from @mui/material for consistency",
        )


def _file_name(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def is_app_shell(path: str) -> bool:
    return _file_name(path).startswith(("_document.", "_app."))


def check_ssr_setup(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Pages Router shells: _document extracts Emotion styles, _app provides the theme."""
    if _file_name(path).startswith("_document."):
        if not EMOTION_SERVER.search(content):
            yield Hit(
                line=1,
                message="MUI Emotion SSR not configured",
                excerpt="No createEmotionServer found",
                suggestion="Set up createEmotionServer and extractCriticalToChunks for SSR",
            )
        return

    if "CssBaseline" not in content:
        yield Hit(
            line=1,
            message="CssBaseline not injected",
            excerpt="No CssBaseline found",
            suggestion="Add CssBaseline to prevent FOUC and ensure consistent styling",
        )
    if "ThemeProvider" not in content:
        yield Hit(
            line=1,
            message="ThemeProvider not found at app root",
            excerpt="No ThemeProvider found",
            suggestion="Wrap the app with ThemeProvider for consistent theming",
        )


def check_font_strategy(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    has_preload = FONT_PRELOAD.search(content) is not None
    google_fonts = GOOGLE_FONTS.search(content)

    if google_fonts and not has_preload:
        line, column = line_col(content, google_fonts.start())
        yield Hit(
            line=line,
            column=column,
            message="Google Fonts blocking CSS without preload",
            suggestion='Use next/font or add rel="preload" with display=swap',
        )
    if not NEXT_FONT.search(content) and not has_preload:
        yield Hit(
            line=1,
            severity="warning",
            message="Font strategy not optimized",
            excerpt="No optimized font loading found",
            suggestion="Use next/font or preload fonts to prevent layout shift",
        )


RULES = [
    PatternRule(
        id="mui/inline-styles",
        category="mui",
        severity="error",
        message="Use the sx prop instead of inline styles",
        suggestion="Replace style={{...}} with sx={{...}}",
        pattern=re.compile(r"(?<![\w-])style=\{\{"),
        fixable=True,
    ),
    PatternRule(
        id="mui/responsive-design",
        category="mui",
        severity="warning",
        message="Grid item without responsive breakpoints",
        suggestion="Add breakpoint props such as xs={12} md={6}",
        pattern=re.compile(
            r"<Grid\b(?=" + TAG_ATTRS + r"\bitem\b)(?!" + TAG_ATTRS + r"\b(?:xs|sm|md|lg|xl)=)" + TAG_ATTRS + ">"
        ),
        fixable=True,
    ),
    PatternRule(
        id="mui/theme-usage",
        category="mui",
        severity="info",
        message="Hardcoded units in sx prop",
        suggestion="Use theme spacing units (sx={{ p: 2 }}) instead of literal px/rem values",
        pattern=re.compile(r"""sx=\{\{[^}]*['"]\d+(?:\.\d+)?(?:px|rem|em|%)['"]"""),
    ),
    StructuralRule(
        id="mui/theme-token-enforcement",
        category="mui",
        severity="warning",
        message="Hardcoded colors and spacing detected - use theme tokens instead",
        suggestion="Replace hardcoded colors with theme.palette.* and spacing with theme.spacing()",
        check=check_theme_tokens,
        fixable=True,
    ),
    StructuralRule(
        id="mui/import-guards",
        category="mui",
        severity="error",
        message="Import guards to prevent bundle bloat - use named imports only",
        suggestion="Use named imports for MUI icons and path imports for lodash functions",
        check=check_import_guards,
    ),
    StructuralRule(
        id="mui/component-usage",
        category="mui",
        severity="warning",
        message="Use MUI components instead of HTML elements",
        suggestion="Use MUI Button, TextField and Select components for consistency",
        check=check_component_usage,
    ),
    PatternRule(
        id="mui/deprecated-apis",
        category="mui",
        severity="error",
        message="Deprecated MUI styling API",
        suggestion="Migrate makeStyles/withStyles to the sx prop or styled()",
        pattern=re.compile(r"\b(?:makeStyles|withStyles)\b|@mui/styles\b|@material-ui/"),
    ),
    StructuralRule(
        id="mui/ssr-setup",
        category="mui",
        severity="error",
        message="MUI SSR not properly configured - will cause FOUC and hydration issues",
        suggestion="Extract Emotion styles in _document and wrap _app in ThemeProvider with CssBaseline",
        check=check_ssr_setup,
        should_check=is_app_shell,
    ),
    StructuralRule(
        id="mui/font-strategy",
        category="mui",
        severity="error",
        message="Font strategy not optimized - will cause CLS and performance issues",
        suggestion="Load fonts with next/font",
        check=check_font_strategy,
        should_check=is_document_file,
    ),
]
