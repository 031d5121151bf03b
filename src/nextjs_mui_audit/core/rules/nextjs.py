"""Next.js framework rules."""
import re
from typing import Iterator

from .base import Hit, PatternRule, StructuralRule, line_col

# Matches a "use client" directive line, either quote style
CLIENT_DIRECTIVE = re.compile(r"""^[ \t]*(["'])use client\1;?[ \t]*$""", re.MULTILINE)

# Anything that genuinely needs the client runtime
CLIENT_FEATURES = re.compile(
    r"\b(?:use[A-Z]\w*|onClick|onChange|onSubmit|onKey\w+|onMouse\w+|onFocus|onBlur"
    r"|window|document|localStorage|sessionStorage|navigator)\b"
)

HYDRATION_HAZARDS = (
    ("Math.floor(Math.random()", "Math.floor(Math.random())", "Use a stable seed or move to useEffect"),
    ("Math.random()", "Math.random()", "Use a stable seed or move to useEffect"),
    ("Date.now()", "Date.now()", "Use a stable timestamp or move to useEffect"),
    ("new Date()", "new Date()", "Use a stable timestamp or move to useEffect"),
    ("crypto.randomUUID()", "crypto.randomUUID()", "Use a stable ID or move to useEffect"),
)


def is_pages_router_file(path: str) -> bool:
    """Files under a pages/ directory, API routes excluded."""
    normalized = f"/{path}"
    return "/pages/" in normalized and "/pages/api/" not in normalized and "/app/" not in normalized


def check_app_router(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    yield Hit(line=1, excerpt=f"Pages Router file: {path}")


def uses_client_features(content: str) -> bool:
    return CLIENT_FEATURES.search(content) is not None


def check_client_directive(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Flag a "use client" directive in a file that uses no client-only features."""
    match = CLIENT_DIRECTIVE.search(content)
    if match and not uses_client_features(content):
        line, _ = line_col(content, match.start())
        yield Hit(line=line, message='Unnecessary "use client" directive')


def check_hydration(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Non-deterministic values rendered on the server cause hydration mismatches."""
    if CLIENT_DIRECTIVE.search(content):
        return
    for number, line in enumerate(lines, 1):
        stripped = line.strip()
        if stripped.startswith(("//", "/*", "*")) or "console." in stripped:
            continue
        seen_floor = False
        for token, label, suggestion in HYDRATION_HAZARDS:
            column = line.find(token)
            if column == -1:
                continue
            # Math.random() inside Math.floor(...) is already reported
            if token == "Math.random()" and seen_floor:
                continue
            seen_floor = seen_floor or token.startswith("Math.floor")
            yield Hit(
                line=number,
                column=column + 1,
                message=f"{label} detected - this causes SSR hydration mismatches",
                suggestion=suggestion,
            )


RULES = [
    StructuralRule(
        id="next/app-router",
        category="nextjs",
        severity="warning",
        message="Consider using App Router (app/ directory) for new projects",
        suggestion="Migrate to App Router for modern Next.js features",
        check=check_app_router,
        should_check=is_pages_router_file,
    ),
    StructuralRule(
        id="next/client-directive",
        category="nextjs",
        severity="warning",
        message='Unnecessary "use client" directive detected',
        suggestion="Remove \"use client\" if the component doesn't need client-side features",
        check=check_client_directive,
        fixable=True,
    ),
    PatternRule(
        id="next/head-usage",
        category="nextjs",
        severity="error",
        message="next/head is not supported in the App Router",
        suggestion="Use the Metadata API (export const metadata) instead of next/head",
        pattern=re.compile(r"""import\s+.*\bHead\b.*\s+from\s+['"]next/head['"]"""),
    ),
    PatternRule(
        id="next/image-usage",
        category="nextjs",
        severity="error",
        message="Use next/image instead of <img> tags",
        suggestion="Replace <img> with the Image component from next/image",
        pattern=re.compile(r"<img\b"),
        fixable=True,
    ),
    PatternRule(
        id="next/font-usage",
        category="nextjs",
        severity="warning",
        message="Use next/font instead of linking Google Fonts",
        suggestion="Import the font from next/font/google for self-hosting and zero layout shift",
        pattern=re.compile(r"""href=["']https://fonts\.googleapis\.com"""),
    ),
    PatternRule(
        id="next/router-usage",
        category="nextjs",
        severity="warning",
        message="next/router is the Pages Router API",
        suggestion="Use useRouter, usePathname and useSearchParams from next/navigation",
        pattern=re.compile(r"""import\s+.*\s+from\s+['"]next/router['"]"""),
    ),
    StructuralRule(
        id="nextjs/ssr-hydration-sanity",
        category="nextjs",
        severity="error",
        message="SSR hydration mismatch detected - non-deterministic values in server-rendered components",
        suggestion="Use stable values for SSR or move non-deterministic logic to useEffect",
        check=check_hydration,
    ),
]
