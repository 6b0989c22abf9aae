"""
Deprecated Craft template API detection.
"""

import re
from dataclasses import dataclass
from typing import Generator, List

from craftaudit.core.context import ScanState
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.rules import Detector, DetectorMetadata, LineContext, detector
from craftaudit.remediation.fixers import attach_fix


@dataclass(frozen=True)
class DeprecatedUsage:
    regex: re.Pattern
    message: str
    suggestion: str


DEPRECATED_USAGES: List[DeprecatedUsage] = [
    DeprecatedUsage(
        re.compile(r"craft\.request\."),
        "craft.request is deprecated",
        "Use craft.app.request instead",
    ),
    DeprecatedUsage(
        re.compile(r"craft\.config\."),
        "craft.config is deprecated",
        "Use craft.app.config.general instead",
    ),
    DeprecatedUsage(
        re.compile(r"craft\.session\."),
        "craft.session is deprecated",
        "Use craft.app.session instead",
    ),
    DeprecatedUsage(
        re.compile(r"\.getUrl\(\)"),
        "getUrl() is deprecated for assets",
        "Use the .url property instead",
    ),
    DeprecatedUsage(
        re.compile(r"\{%-?\s*includeJsFile\b"),
        "includeJsFile tag is deprecated",
        "Use {% js 'file.js' %} or craft.app.view.registerJsFile() instead",
    ),
    DeprecatedUsage(
        re.compile(r"\{%-?\s*includeCssFile\b"),
        "includeCssFile tag is deprecated",
        "Use {% css 'file.css' %} or craft.app.view.registerCssFile() instead",
    ),
    DeprecatedUsage(
        re.compile(r"\{%-?\s*includeJs\b"),
        "includeJs tag is deprecated",
        "Use the {% js %} tag instead",
    ),
    DeprecatedUsage(
        re.compile(r"\{%-?\s*includeCss\b"),
        "includeCss tag is deprecated",
        "Use the {% css %} tag instead",
    ),
]


@detector
class DeprecatedApiDetector(Detector):
    """
    Detects Craft 2 era template APIs.

    Variable renames carry a safe fix; the old ``include*`` tags need a
    structural rewrite and get none.
    """

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.DEPRECATED_API,
            name="Deprecated template API",
            severity=Severity.MEDIUM,
            order=40,
            description="Template uses an API removed or deprecated in current Craft versions.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        for usage in DEPRECATED_USAGES:
            match = usage.regex.search(line.text)
            if match is None:
                continue
            yield self.create_finding(
                state,
                line=line.number,
                message=usage.message,
                suggestion=usage.suggestion,
                code=line.code,
                fix=attach_fix(self.pattern, match.group(0), line=line.text),
            )
