"""
Leftover debug output detection.
"""

import re
from typing import Generator

from craftaudit.core.context import ScanState
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.rules import Detector, DetectorMetadata, LineContext, detector
from craftaudit.remediation.fixers import attach_fix


DUMP_SIGNATURES = [
    re.compile(r"\{%-?\s*dump\b"),
    re.compile(r"(?<![\w.])dump\("),
    re.compile(r"(?<![\w.])dd\("),
    re.compile(r"(?<![\w.])var_dump\("),
]


@detector
class DumpCallDetector(Detector):
    """Detects ``{% dump %}``, ``dump()``, ``dd()`` and ``var_dump()``."""

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.DUMP_CALL,
            name="Debug output left in template",
            severity=Severity.MEDIUM,
            order=70,
            description="Debug dump calls leak internal data and should not reach production.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        # One finding per line, however many dumps it holds
        if not any(signature.search(line.text) for signature in DUMP_SIGNATURES):
            return

        yield self.create_finding(
            state,
            line=line.number,
            message="Debug output call left in template",
            suggestion="Remove dump() calls before deploying to production",
            code=line.code,
            fix=attach_fix(self.pattern, line.code, line=line.text),
        )
