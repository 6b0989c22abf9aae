"""
Single-pass template scanner.

``TemplateScanner.scan`` walks a template once, top to bottom. For every
line it first brings the shared ``ScanState`` up to date (query
assignments, loops, forms), then runs each detector in its fixed order.
Findings come back in discovery order and are never re-sorted.
"""

import logging
from typing import List, Optional

from craftaudit.core.context import ScanState
from craftaudit.core.findings import Finding
from craftaudit.core.rules import Detector, LineContext, registry
from craftaudit.core.suppression import SuppressionIndex

# Import detectors to register them with the registry
import craftaudit.rules  # noqa: F401

logger = logging.getLogger(__name__)


class TemplateScanner:
    """
    Scans one template at a time.

    The scanner holds no per-file state of its own, so a single instance
    can be shared between worker threads.
    """

    def __init__(self, detectors: Optional[List[Detector]] = None):
        self.detectors = detectors if detectors is not None else registry.get_detectors()

    def scan(self, file_path: str, content: str) -> List[Finding]:
        """
        Scan template content and return its findings.

        Args:
            file_path: Path reported on each finding, usually relative.
            content: Full template source.

        Returns:
            Findings in the order they were discovered.
        """
        lines = content.splitlines()
        suppressions = SuppressionIndex.from_lines(lines)
        state = ScanState(file_path, lines, suppressions)
        findings: List[Finding] = []

        for line_number, text in enumerate(lines, start=1):
            state.begin_line()
            state.track_assignments(text, line_number)
            state.update_loops(text, line_number, before_detectors=True)
            state.track_lazy_eager_loading(text, line_number)
            state.update_form(text, line_number)

            line = LineContext(number=line_number, text=text)
            for detector in self.detectors:
                self._collect(findings, state, detector.check_line(line, state))

            state.update_loops(text, line_number, before_detectors=False)

        for detector in self.detectors:
            self._collect(findings, state, detector.finish(state))

        logger.debug(
            "Scanned %s: %d lines, %d findings, %d suppression markers",
            file_path, len(lines), len(findings), len(suppressions),
        )
        return findings

    @staticmethod
    def _collect(findings: List[Finding], state: ScanState, emitted):
        for finding in emitted:
            if state.suppressions.is_suppressed(finding.line, finding.pattern):
                continue
            findings.append(finding)


def scan_template(file_path: str, content: str) -> List[Finding]:
    """Scan template content with every registered detector."""
    return TemplateScanner().scan(file_path, content)
