"""
Cross-Site Request Forgery (CSRF) detection for HTML forms.
"""

from typing import Generator

from craftaudit.core.context import ScanState
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.rules import Detector, DetectorMetadata, LineContext, detector


@detector
class FormMissingCSRFDetector(Detector):
    """
    Reports forms that close without a CSRF token.

    Forms are judged when their closing tag is reached; the finding points
    at the opening tag. GET forms don't change state and are exempt.
    """

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.FORM_MISSING_CSRF,
            name="Form missing CSRF token",
            severity=Severity.HIGH,
            order=90,
            description="State-changing forms must include {{ csrfInput() }}.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        for form in state.closed_forms:
            if form.is_get or form.saw_csrf_token:
                continue
            yield self.create_finding(
                state,
                line=form.start_line,
                message="Form is missing a CSRF token",
                suggestion="Add {{ csrfInput() }} inside the form",
                code=form.start_text,
            )
