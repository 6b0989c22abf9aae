"""
Cross-Site Scripting (XSS) detection for raw template output.

Twig escapes every ``{{ }}`` output by default. ``|raw`` switches that off,
so any value reaching it unsanitised is rendered as HTML.
"""

import re
from typing import Generator

from craftaudit.core.context import ScanState
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.rules import Detector, DetectorMetadata, LineContext, detector
from craftaudit.remediation.fixers import attach_fix


OUTPUT_TAG_PATTERN = re.compile(r"\{\{-?(.*?)-?\}\}")
RAW_FILTER_PATTERN = re.compile(r"\|\s*raw\b")
SANITIZING_FILTER_PATTERN = re.compile(r"\|\s*(?:purify|escape|e|striptags)\b")

# Values that come straight from the HTTP request
REQUEST_SOURCE_PATTERN = re.compile(
    r"craft\.app\.request\.|craft\.request\.|\b_GET\b|\b_POST\b|\b_REQUEST\b"
)


@detector
class RawOutputXSSDetector(Detector):
    """
    Detects ``{{ expr|raw }}`` output without a sanitising filter.

    Request-derived values are reported as high severity, anything else as
    medium. A ``|purify``, ``|escape``, ``|e`` or ``|striptags`` filter
    before ``|raw`` clears the output.
    """

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.XSS_RAW_OUTPUT,
            name="Unescaped raw output",
            severity=Severity.MEDIUM,
            order=50,
            description="Output rendered with |raw bypasses Twig auto-escaping.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        for tag in OUTPUT_TAG_PATTERN.finditer(line.text):
            expression = tag.group(1)
            raw_filter = RAW_FILTER_PATTERN.search(expression)
            if raw_filter is None:
                continue

            filtered_value = expression[:raw_filter.start()]
            if SANITIZING_FILTER_PATTERN.search(filtered_value):
                continue

            if REQUEST_SOURCE_PATTERN.search(filtered_value):
                severity = Severity.HIGH
                message = "Request data rendered with |raw allows reflected XSS"
            else:
                severity = Severity.MEDIUM
                message = "Output rendered with |raw bypasses auto-escaping"

            yield self.create_finding(
                state,
                line=line.number,
                message=message,
                suggestion="Remove |raw, or sanitize the value with |purify before |raw",
                code=line.code,
                severity=severity,
                fix=attach_fix(self.pattern, raw_filter.group(0), line=line.text),
            )
