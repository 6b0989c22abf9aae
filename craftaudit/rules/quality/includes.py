"""
Include tag detection.

Twig recommends the ``include()`` function over the ``{% include %}`` tag:
it composes with filters and makes the context handling explicit.
"""

import re
from typing import Generator

from craftaudit.core.context import ScanState
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.rules import Detector, DetectorMetadata, LineContext, detector
from craftaudit.remediation.fixers import attach_fix


STATIC_INCLUDE_TAG_PATTERN = re.compile(
    r"\{%-?\s*include\s+"
    r"(?P<template>'[^']*'|\"[^\"]*\")"
    r"(?P<ignore_missing>\s+ignore\s+missing)?"
    r"(?:\s+with\s+(?P<variables>.+?))?"
    r"(?P<only>\s+only)?"
    r"\s*-?%\}"
)


@detector
class IncludeTagDetector(Detector):
    """Suggests ``{{ include() }}`` for static ``{% include %}`` tags."""

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.INCLUDE_TAG,
            name="Include tag instead of include()",
            severity=Severity.LOW,
            order=80,
            description="The include() function is preferred over the include tag.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        for match in STATIC_INCLUDE_TAG_PATTERN.finditer(line.text):
            fix = attach_fix(
                self.pattern,
                match.group(0),
                line=line.text,
                template=match.group("template"),
                variables=match.group("variables"),
                only=bool(match.group("only")),
                ignore_missing=bool(match.group("ignore_missing")),
            )
            yield self.create_finding(
                state,
                line=line.number,
                message="Include tag can be replaced with the include() function",
                suggestion="Use {{ include('...') }}, the form recommended since Twig 3",
                code=line.code,
                fix=fix,
            )
