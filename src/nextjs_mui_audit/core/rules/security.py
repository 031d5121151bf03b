"""Security rules."""
import re
from typing import Iterator

from .base import TAG_ATTRS, Hit, PatternRule, StructuralRule, line_col

PROTECTED_ROUTE = re.compile(r"""['"`](/(?:admin|dashboard|profile|settings|users))(?:[/?#'"`])""")
AUTH_CHECK = re.compile(r"\b(?:useAuth|isAuthenticated|checkAuth|requireAuth|getServerSession|useSession|auth)\s*\(")
HEADERS_FUNCTION = re.compile(r"\bheaders\s*:\s*async\s*\(\)|\basync\s+headers\s*\(\)", re.IGNORECASE)
REQUIRED_HEADERS = (
    "content-security-policy",
    "x-content-type-options",
    "referrer-policy",
    "strict-transport-security",
)


def is_next_config(path: str) -> bool:
    return path.rsplit("/", 1)[-1].startswith("next.config.")


def check_authentication(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Links or redirects to protected routes in a file with no auth check."""
    route = PROTECTED_ROUTE.search(content)
    if route is None or AUTH_CHECK.search(content):
        return
    line, column = line_col(content, route.start(1))
    yield Hit(
        line=line,
        column=column,
        message=f"Protected route {route.group(1)} reached without an authentication check",
    )


def check_headers_config(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    match = HEADERS_FUNCTION.search(content)
    if match is None:
        yield Hit(
            line=1,
            message="Security headers function not configured",
            excerpt="No headers() function found",
            suggestion="Add an async headers() function returning the security headers",
        )
        return

    line, column = line_col(content, match.start())
    lowered = content.lower()
    for header in REQUIRED_HEADERS:
        if header not in lowered:
            yield Hit(
                line=line,
                column=column,
                message=f"Required security header missing: {header}",
                suggestion=f"Add the {header} header to headers()",
            )


RULES = [
    PatternRule(
        id="security/no-secrets",
        category="security",
        severity="error",
        message="Potential secret/credential detected",
        suggestion="Use environment variables instead of hardcoded secrets",
        pattern=re.compile(
            r"""(?:api[_-]?key|secret|password|token)\w*["']?\s*[=:]\s*['"][^'"\s]{20,}['"]""",
            re.IGNORECASE,
        ),
    ),
    PatternRule(
        id="security/dangerous-html",
        category="security",
        severity="error",
        message="dangerouslySetInnerHTML usage detected",
        suggestion="Sanitize HTML content or render React components instead",
        pattern=re.compile(r"\bdangerouslySetInnerHTML\b"),
    ),
    PatternRule(
        id="security/external-links",
        category="security",
        severity="info",
        message="External link missing security attributes",
        suggestion='Add rel="noopener noreferrer" for security',
        pattern=re.compile(r"<\w+\b(?!" + TAG_ATTRS + r"\brel=)" + TAG_ATTRS + r"""\btarget=["']_blank["']"""),
    ),
    PatternRule(
        id="security/xss-vulnerability",
        category="security",
        severity="error",
        message="Potential XSS vulnerability detected",
        suggestion="Use textContent or React components instead of innerHTML",
        pattern=re.compile(r"\.(?:innerHTML|outerHTML)\s*=|\bdocument\.write\("),
    ),
    PatternRule(
        id="security/unsafe-eval",
        category="security",
        severity="error",
        message="Unsafe eval() usage detected",
        suggestion="Avoid eval() and new Function(); parse data explicitly instead",
        pattern=re.compile(r"(?<![\w.])eval\s*\(|\bnew\s+Function\s*\("),
    ),
    PatternRule(
        id="security/sql-injection",
        category="security",
        severity="error",
        message="Potential SQL injection vulnerability",
        suggestion="Use parameterized queries or an ORM to prevent SQL injection",
        pattern=re.compile(r"`[^`]*\b(?:SELECT|INSERT|UPDATE|DELETE|DROP)\b[^`]*\$\{", re.IGNORECASE),
    ),
    StructuralRule(
        id="security/authentication",
        category="security",
        severity="error",
        message="Missing authentication check for protected routes",
        suggestion="Check the session (useSession, getServerSession, useAuth) before linking to protected routes",
        check=check_authentication,
        should_check=lambda path: "pages/" in path or "components/" in path,
    ),
    StructuralRule(
        id="security/headers-config",
        category="security",
        severity="error",
        message="Security headers not configured - required for production",
        suggestion="Add an async headers() function with CSP, HSTS, nosniff and referrer policy",
        check=check_headers_config,
        should_check=is_next_config,
    ),
]
