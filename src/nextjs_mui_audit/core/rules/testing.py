"""Testing rules: component coverage and test-suite hygiene."""
import re
from typing import Iterator

from .base import Hit, PatternRule, StructuralRule, is_source_file

TEST_FILE = re.compile(r"\.(?:test|spec)\.[cm]?[jt]sx?$")
TEST_CASE = re.compile(r"\b(?:it|test)\s*\(")
SOURCE_SUFFIX = re.compile(r"\.([cm]?[jt]sx?)$")
RENDER_TEST = re.compile(r"\brender\s*\(|\bscreen\.(?:getBy|findBy|queryBy)|\bmount\s*\(")


def is_test_file(path: str) -> bool:
    return TEST_FILE.search(path) is not None or "__tests__/" in path


def is_covered_source(path: str) -> bool:
    """Component and page sources that should ship with a test file."""
    if not ("components/" in path or "pages/" in path) or is_test_file(path):
        return False
    name = path.rsplit("/", 1)[-1]
    return is_source_file(path) and not name.startswith(("index.", "_")) and ".stories." not in name


def companion_test_path(path: str) -> str:
    return SOURCE_SUFFIX.sub(r".test.\1", path)


def check_coverage(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    yield Hit(line=1, excerpt="No test file found", suggestion=f"Create test file: {companion_test_path(path)}")


def check_component_tests(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    if not RENDER_TEST.search(content):
        yield Hit(line=1, message="Component lacks render tests", excerpt="No render tests found")


def check_assertions(content: str, lines: list[str], path: str) -> Iterator[Hit]:
    if TEST_CASE.search(content) and "expect(" not in content and "assert" not in content:
        yield Hit(line=1, excerpt="No expect() calls found")


RULES = [
    StructuralRule(
        id="testing/coverage",
        category="testing",
        severity="error",
        message="Component lacks test coverage",
        suggestion="Add a .test file next to the component",
        check=check_coverage,
        should_check=is_covered_source,
    ),
    StructuralRule(
        id="testing/component-testing",
        category="testing",
        severity="warning",
        message="Component should have comprehensive tests",
        suggestion="Add render tests using React Testing Library",
        check=check_component_tests,
        should_check=lambda path: "components/" in path and is_test_file(path),
    ),
    PatternRule(
        id="testing/focused-tests",
        category="testing",
        severity="error",
        message="Focused test will skip the rest of the suite",
        suggestion="Remove .only before committing",
        pattern=re.compile(r"\b(?:describe|it|test)\.only\s*\(|\bf(?:it|describe)\s*\("),
        should_check=is_test_file,
    ),
    PatternRule(
        id="testing/skipped-tests",
        category="testing",
        severity="info",
        message="Skipped test",
        suggestion="Fix or delete skipped tests",
        pattern=re.compile(r"\b(?:describe|it|test)\.skip\s*\(|\bx(?:it|describe|test)\s*\("),
        should_check=is_test_file,
    ),
    StructuralRule(
        id="testing/empty-test",
        category="testing",
        severity="warning",
        message="Test file has no assertions",
        suggestion="Add expect() assertions so the tests can fail",
        check=check_assertions,
        should_check=is_test_file,
    ),
]
