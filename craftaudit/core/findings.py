"""
Finding data structures for the template auditor.

This module defines the closed set of template patterns, the severity
levels, and the immutable records produced by the detectors.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any
import json


class Severity(Enum):
    """Severity levels for findings."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    def __lt__(self, other):
        order = [Severity.INFO, Severity.LOW, Severity.MEDIUM, Severity.HIGH]
        return order.index(self) < order.index(other)

    def __le__(self, other):
        return self == other or self < other


class Pattern(Enum):
    """The closed set of template anti-patterns a finding can report."""
    N_PLUS_ONE = "n-plus-one"
    MISSING_LIMIT = "missing-limit"
    MISSING_STATUS_FILTER = "missing-status-filter"
    DEPRECATED_API = "deprecated-api"
    XSS_RAW_OUTPUT = "xss-raw-output"
    SSTI_DYNAMIC_INCLUDE = "ssti-dynamic-include"
    DUMP_CALL = "dump-call"
    INCLUDE_TAG = "include-tag"
    FORM_MISSING_CSRF = "form-missing-csrf"
    MIXED_LOADING_STRATEGY = "mixed-loading-strategy"


CATEGORY = "template"


@dataclass(frozen=True)
class Fix:
    """
    A literal search/replace suggestion attached to a finding.

    ``safe`` fixes are mechanical substitutions; unsafe ones may change
    what the template renders and must only be applied after confirmation.
    An empty ``replacement`` means the whole line is deleted.
    """
    safe: bool
    search: str
    replacement: str
    description: str

    @property
    def deletes_line(self) -> bool:
        return self.replacement == ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "safe": self.safe,
            "search": self.search,
            "replacement": self.replacement,
            "description": self.description,
        }


@dataclass(frozen=True)
class Finding:
    """
    A single template issue.

    Findings are created by exactly one detector invocation and never
    modified afterwards. ``line`` is 1-based; query-related findings point
    at the line where the query was defined rather than where it was used.
    """
    severity: Severity
    pattern: Pattern
    file: str
    line: int
    message: str
    suggestion: str
    code: str
    fix: Optional[Fix] = None
    category: str = CATEGORY

    def __post_init__(self):
        """Normalize string values passed in from deserialized data."""
        if isinstance(self.severity, str):
            object.__setattr__(self, "severity", Severity(self.severity))
        if isinstance(self.pattern, str):
            object.__setattr__(self, "pattern", Pattern(self.pattern))
        if isinstance(self.fix, dict):
            object.__setattr__(self, "fix", Fix(**self.fix))

    def to_dict(self) -> Dict[str, Any]:
        """Convert finding to a dictionary."""
        result = {
            "severity": self.severity.value,
            "category": self.category,
            "pattern": self.pattern.value,
            "file": self.file,
            "line": self.line,
            "message": self.message,
            "suggestion": self.suggestion,
            "code": self.code,
        }
        if self.fix:
            result["fix"] = self.fix.to_dict()
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert finding to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        """Create a Finding from a dictionary."""
        data = dict(data)
        data.pop("category", None)
        return cls(**data)


@dataclass
class ScanResult:
    """Results from scanning a template tree."""
    findings: List[Finding]
    files_scanned: int
    scan_time_seconds: float
    errors: List[str] = field(default_factory=list)

    def count(self, severity: Severity) -> int:
        return sum(1 for f in self.findings if f.severity == severity)

    @property
    def high_count(self) -> int:
        return self.count(Severity.HIGH)

    @property
    def medium_count(self) -> int:
        return self.count(Severity.MEDIUM)

    @property
    def low_count(self) -> int:
        return self.count(Severity.LOW)

    @property
    def info_count(self) -> int:
        return self.count(Severity.INFO)

    @property
    def total_findings(self) -> int:
        return len(self.findings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": {
                "files_scanned": self.files_scanned,
                "scan_time_seconds": self.scan_time_seconds,
                "total_findings": self.total_findings,
                "by_severity": {
                    "high": self.high_count,
                    "medium": self.medium_count,
                    "low": self.low_count,
                    "info": self.info_count,
                },
            },
            "findings": [f.to_dict() for f in self.findings],
            "errors": self.errors,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
