"""
Remediation for template findings.

Provides literal, safety-classified fixes and an engine that applies
them with diffs, dry runs and backups.
"""

from craftaudit.remediation.engine import RemediationEngine
from craftaudit.remediation.fixers import BaseFixer, attach_fix, get_fixer

__all__ = [
    "RemediationEngine",
    "BaseFixer",
    "attach_fix",
    "get_fixer",
]
