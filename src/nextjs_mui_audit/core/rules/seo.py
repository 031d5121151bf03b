"""SEO rules. Metadata checks run on root layouts and custom documents; pages inherit their metadata."""
import re
from typing import Iterator

from .base import Hit, StructuralRule, line_col
from .responsive import is_document_file

REQUIRED_META = ("description", "keywords", "author")
REQUIRED_OG = ("og:title", "og:description", "og:image", "og:type")
GENERIC_TITLES = {"Next.js", "React App", "Create Next App"}
MIN_TITLE_LENGTH = 10

TITLE_TAG = re.compile(r"<title>(.*?)</title>", re.DOTALL)
METADATA_TITLE = re.compile(r"""\btitle\s*:\s*['"]([^'"]*)['"]""")


def _declares(content: str, attribute: str, name: str) -> bool:
    return f'{attribute}="{name}"' in content or f"{attribute}='{name}'" in content


def check_meta_tags(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    exports_metadata = "export const metadata" in content
    for tag in REQUIRED_META:
        if _declares(content, "name", tag):
            continue
        if exports_metadata and re.search(rf"\b{tag}s?\s*:", content):
            continue
        yield Hit(
            line=1,
            message=f"Missing meta tag: {tag}",
            excerpt=f'No meta name="{tag}" found',
            suggestion=f'Add <meta name="{tag}" content="..."> or set it in the metadata export',
        )


def check_og_tags(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    has_open_graph = re.search(r"\bopenGraph\s*:", content) is not None
    for tag in REQUIRED_OG:
        if _declares(content, "property", tag):
            continue
        if has_open_graph and re.search(rf"\b{tag.split(':')[1]}\s*:", content):
            continue
        yield Hit(
            line=1,
            message=f"Missing Open Graph tag: {tag}",
            excerpt=f"No {tag} found",
            suggestion=f'Add <meta property="{tag}" content="..."> or metadata.openGraph',
        )


def check_title(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    match = TITLE_TAG.search(content) or METADATA_TITLE.search(content)
    if not match:
        yield Hit(
            line=1,
            message="Missing page title tag",
            excerpt="No <title> tag found",
            suggestion="Add <title>Your Page Title</title> or metadata.title",
        )
        return

    title = match.group(1).strip()
    if title in GENERIC_TITLES or len(title) < MIN_TITLE_LENGTH:
        line, column = line_col(content, match.start())
        yield Hit(
            line=line,
            column=column,
            severity="warning",
            message="Generic or too short page title",
            suggestion="Use descriptive, unique titles (50-60 characters)",
        )


STRUCTURED_DATA = re.compile(r"application/ld\+json|['\"]@context['\"]|['\"]@type['\"]")
INTERNAL_LINK = re.compile(r"""\bhref=\{?["'`]/""")
NAVIGATION = re.compile(r"\b(?:nav|navigation|menu)\b|<(?:nav|Link|Menu|Breadcrumbs)\b", re.IGNORECASE)
MIN_LINES_FOR_LINKS = 50


def is_layout_file(path: str) -> bool:
    return path.rsplit("/", 1)[-1].startswith("layout.")


def check_structured_data(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    if not STRUCTURED_DATA.search(content):
        yield Hit(line=1, excerpt="No structured data found")


def check_internal_linking(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    """Long components and pages with no internal links or navigation."""
    if len(lines) <= MIN_LINES_FOR_LINKS:
        return
    if INTERNAL_LINK.search(content) or NAVIGATION.search(content):
        return
    yield Hit(line=1, message="Component could benefit from internal linking", excerpt="No internal links found")


RULES = [
    StructuralRule(
        id="seo/meta-tags",
        category="seo",
        severity="warning",
        message="Missing essential meta tags",
        suggestion="Add description, keywords and author metadata",
        check=check_meta_tags,
        should_check=is_document_file,
    ),
    StructuralRule(
        id="seo/og-tags",
        category="seo",
        severity="warning",
        message="Missing Open Graph meta tags",
        suggestion="Add og:title, og:description, og:image and og:type",
        check=check_og_tags,
        should_check=is_document_file,
    ),
    StructuralRule(
        id="seo/title-tag",
        category="seo",
        severity="error",
        message="Missing or generic page title",
        suggestion="Add a descriptive <title>",
        check=check_title,
        should_check=is_document_file,
    ),
    StructuralRule(
        id="seo/structured-data",
        category="seo",
        severity="info",
        message="Missing structured data markup",
        suggestion="Add JSON-LD structured data (<script type=\"application/ld+json\">) for rich results",
        check=check_structured_data,
        should_check=is_layout_file,
    ),
    StructuralRule(
        id="seo/internal-linking",
        category="seo",
        severity="info",
        message="Consider adding internal links for better site structure",
        suggestion="Link related pages with next/link to improve navigation and crawlability",
        check=check_internal_linking,
        should_check=lambda path: "components/" in path or "pages/" in path,
    ),
]
