"""Auto-fixer for fixable audit findings."""
from .engine import (
    BACKUP_SUFFIX,
    MANUAL_INTERVENTION,
    AutoFixer,
    atomic_write,
    generate_fix_report,
)
from .transforms import ALREADY_FIXED, BUILTIN_TRANSFORMS, Occurrence, TransformOutcome

__all__ = [
    "ALREADY_FIXED",
    "BACKUP_SUFFIX",
    "BUILTIN_TRANSFORMS",
    "MANUAL_INTERVENTION",
    "AutoFixer",
    "Occurrence",
    "TransformOutcome",
    "atomic_write",
    "generate_fix_report",
]
