"""
Unbounded element query detection.

Both detectors look at the query a loop iterates over, once, on the line
where the loop opens. Findings point at the line where the query was
defined, which is where a fix has to be made.
"""

import re
from typing import Generator

from craftaudit.core.context import QUERY_ORIGIN_PATTERN, ScanState
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.rules import Detector, DetectorMetadata, LineContext, detector
from craftaudit.remediation.fixers import attach_fix


LIMIT_REQUIRED_ORIGINS = re.compile(r"craft\.entries\b|craft\.assets\b|craft\.users\b")

TERMINAL_LIMITERS = [
    ".limit(",
    ".one()",
    ".first()",
    ".count()",
    ".exists()",
    ".ids()",
]

# Criteria that already bound the result set
NARROWING_METHODS = [
    ".id(",
    ".slug(",
    ".relatedTo(",
    ".siteId(",
    ".level(",
    ".uri(",
    ".search(",
    ".eventDate(",
    ".postDate(",
    ".dateCreated(",
    ".dateUpdated(",
    ".ancestorOf(",
    ".descendantOf(",
    ".type(",
    ".group(",
    ".fixedOrder(",
    ".kind(",
    ".status(",
]

FETCH_ALL_CALL = ".all()"
STATUS_FILTER_CALL = ".status("


def is_bounded(source: str) -> bool:
    """Check whether a query source already limits or narrows its results."""
    if any(limiter in source for limiter in TERMINAL_LIMITERS):
        return True
    return any(method in source for method in NARROWING_METHODS)


def _first_report(state: ScanState, pattern: Pattern, line: int) -> bool:
    key = (pattern.value, line)
    if key in state.seen_query_findings:
        return False
    state.seen_query_findings.add(key)
    return True


@detector
class MissingLimitDetector(Detector):
    """
    Flags loops over entry, asset or user queries with no upper bound.

    A query counts as bounded if it uses a terminal call such as
    ``.limit()`` or ``.one()``, or a criteria method that already narrows
    the result set such as ``.id()`` or ``.relatedTo()``. ``.section()`` is
    not narrowing.
    """

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.MISSING_LIMIT,
            name="Unbounded query in loop",
            severity=Severity.MEDIUM,
            order=10,
            description="Element query in loop is missing a limit and may fetch excessive rows.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        loop = state.opened_loop
        if loop is None:
            return

        source = loop.query_source
        if not LIMIT_REQUIRED_ORIGINS.search(source) or is_bounded(source):
            return
        if not _first_report(state, self.pattern, loop.query_line):
            return

        yield self.create_finding(
            state,
            line=loop.query_line,
            message="Query in loop without .limit() may fetch too many results",
            suggestion="Add .limit(n) to paginate results",
            code=source.strip(),
            fix=attach_fix(self.pattern, source, line=state.line_text(loop.query_line)),
        )


@detector
class MissingStatusFilterDetector(Detector):
    """Flags fetch-all queries in loops that never filter on status."""

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.MISSING_STATUS_FILTER,
            name="Query without status filter",
            severity=Severity.LOW,
            order=20,
            description="Element query fetches all results without an explicit .status() filter.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        loop = state.opened_loop
        if loop is None:
            return

        source = loop.query_source
        if not QUERY_ORIGIN_PATTERN.search(source):
            return
        if FETCH_ALL_CALL not in source or STATUS_FILTER_CALL in source:
            return
        if not _first_report(state, self.pattern, loop.query_line):
            return

        yield self.create_finding(
            state,
            line=loop.query_line,
            message="Query uses .all() without a .status() filter",
            suggestion="Add .status('live') to make the status filter explicit",
            code=source.strip(),
            fix=attach_fix(self.pattern, source, line=state.line_text(loop.query_line)),
        )
