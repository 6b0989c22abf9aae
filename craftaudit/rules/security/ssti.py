"""
Server-Side Template Injection (SSTI) detection.

Flags template loading whose target is computed at runtime. Literal
template names, and lists of literal names, are considered safe.
"""

import re
from typing import Generator, Optional

from craftaudit.core.context import ScanState
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.rules import Detector, DetectorMetadata, LineContext, detector


QUOTED = r"(?:'[^']*'|\"[^\"]*\")"
LITERAL_TARGET_PATTERN = re.compile(
    rf"^(?:{QUOTED}|\[\s*{QUOTED}(?:\s*,\s*{QUOTED})*\s*\])$"
)

INCLUDE_TAG_PATTERN = re.compile(r"\{%-?\s*include\s+(.+?)\s*-?%\}")
INCLUDE_MODIFIERS_PATTERN = re.compile(r"\s+(?:ignore\s+missing|with|only)\b")
INCLUDE_FUNCTION_PATTERN = re.compile(r"(?<![\w.])include\(\s*(\[[^\]]*\]|[^,)]+)")
TEMPLATE_FROM_STRING_PATTERN = re.compile(r"\btemplate_from_string\s*\(")
SOURCE_FUNCTION_PATTERN = re.compile(r"(?<![\w.])source\(\s*(\[[^\]]*\]|[^,)]+)")


def is_literal_target(expression: str) -> bool:
    return bool(LITERAL_TARGET_PATTERN.match(expression.strip()))


def include_tag_target(arguments: str) -> str:
    """Strip ``ignore missing``, ``with`` and ``only`` from include tag arguments."""
    return INCLUDE_MODIFIERS_PATTERN.split(arguments, maxsplit=1)[0]


@detector
class DynamicIncludeDetector(Detector):
    """Detects includes, ``source()`` calls and string templates built from variables."""

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.SSTI_DYNAMIC_INCLUDE,
            name="Dynamic template include",
            severity=Severity.HIGH,
            order=60,
            description="Templates loaded from runtime values may allow server-side template injection.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        message = self._dynamic_load_message(line.text)
        if message is None:
            return

        yield self.create_finding(
            state,
            line=line.number,
            message=message,
            suggestion="Load templates by literal path, or map user input to an allow-list of template names",
            code=line.code,
        )

    def _dynamic_load_message(self, text: str) -> Optional[str]:
        for match in INCLUDE_TAG_PATTERN.finditer(text):
            if not is_literal_target(include_tag_target(match.group(1))):
                return "Dynamic include target may allow server-side template injection"

        for match in INCLUDE_FUNCTION_PATTERN.finditer(text):
            if not is_literal_target(match.group(1)):
                return "Dynamic include() target may allow server-side template injection"

        if TEMPLATE_FROM_STRING_PATTERN.search(text):
            return "template_from_string() renders arbitrary template code"

        for match in SOURCE_FUNCTION_PATTERN.finditer(text):
            if not is_literal_target(match.group(1)):
                return "Dynamic source() call may expose arbitrary template files"

        return None
