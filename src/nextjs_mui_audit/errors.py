"""Error taxonomy for the audit pipeline.

Fatal errors (configuration, scan, missing fix target) propagate to the
caller. Non-fatal ones (rule failures) are collected on result objects.
"""
from __future__ import annotations

from typing import Any


class AuditError(Exception):
    """Base class for audit errors, carrying a machine-readable code."""

    code = "AUDIT_ERROR"

    def __init__(self, message: str, code: str | None = None, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(AuditError):
    """Invalid configuration, rule definition or glob. Raised before scanning."""

    code = "CONFIG_INVALID"


class ScanError(AuditError):
    """A file or directory could not be read during a scan."""

    code = "SCAN_FAILED"

    def __init__(self, message: str, path: str | None = None, cause: BaseException | None = None):
        details = {"path": path}
        if cause is not None:
            details["cause"] = f"{type(cause).__name__}: {cause}"
        super().__init__(message, details=details)
        self.path = path
        self.cause = cause


class RuleExecutionError(AuditError):
    """A rule's detector raised while evaluating one file.

    Never raised out of a scan: the scanner records it and moves on.
    """

    code = "RULE_FAILED"

    def __init__(self, rule_id: str, path: str, cause: BaseException):
        super().__init__(
            f"Rule {rule_id} failed on {path}: {cause}",
            details={"rule": rule_id, "path": path, "cause": f"{type(cause).__name__}: {cause}"},
        )
        self.rule_id = rule_id
        self.path = path
        self.cause = cause


class FixTargetMissing(AuditError):
    """fix_file() was pointed at a path that does not exist."""

    code = "FIX_TARGET_MISSING"

    def __init__(self, path: str):
        super().__init__(f"File not found: {path}", details={"path": path})
        self.path = path


class UnsafeTransformError(AuditError):
    """A transform found no region it could rewrite without changing semantics."""

    code = "UNSAFE_TRANSFORM"


class ThresholdViolation(AuditError):
    """The graded project does not meet a configured threshold."""

    code = "THRESHOLD_VIOLATION"
