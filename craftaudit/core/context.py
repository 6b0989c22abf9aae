"""
Cross-line analysis state for a single template scan.

The scanner walks a template once, top to bottom. Everything a detector
needs to know about earlier lines lives here: which variables hold element
queries, which loop is open, which form is open, and which eager loading
styles the file has used so far. A fresh ``ScanState`` is created for every
file and thrown away afterwards.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from craftaudit.core.suppression import SuppressionIndex


# Element query entry points
QUERY_ORIGINS = [
    "craft.entries",
    "craft.assets",
    "craft.users",
    "craft.categories",
    "craft.tags",
    "craft.globalSets",
    "craft.matrixBlocks",
]

QUERY_ORIGIN_PATTERN = re.compile(
    "|".join(re.escape(origin) + r"\b" for origin in QUERY_ORIGINS)
)

EAGER_LOAD_CALL = ".with("
LAZY_EAGER_CALL = ".eagerly("

SET_PATTERN = re.compile(r"\{%-?\s*set\s+(\w+)\s*=\s*(.+?)\s*-?%\}")
CHAIN_PATTERN = re.compile(r"^(\w+)(\..+)$")
FOR_PATTERN = re.compile(r"\{%-?\s*for\s+(?:\w+\s*,\s*)?(\w+)\s+in\s+(.+?)\s*-?%\}")
ENDFOR_PATTERN = re.compile(r"\{%-?\s*endfor\s*-?%\}")

FORM_OPEN_PATTERN = re.compile(r"<form\b[^>]*>", re.IGNORECASE)
FORM_CLOSE_PATTERN = re.compile(r"</form\s*>", re.IGNORECASE)
FORM_GET_PATTERN = re.compile(r"\bmethod\s*=\s*[\"']?get\b", re.IGNORECASE)
CSRF_TOKEN_PATTERN = re.compile(r"csrfInput\s*\(|csrfToken|CRAFT_CSRF_TOKEN")


@dataclass(frozen=True)
class QueryAssignment:
    source: str
    line: int


class QueryAssignmentTracker:
    """
    Remembers which template variables hold element queries.

    ``{% set q = craft.entries.section('news') %}`` records ``q``. A later
    ``{% set q2 = q.relatedTo(x) %}`` records ``q2`` with the base query's
    source and the suffix appended, attributed to the second line. Chains
    are resolved by dictionary lookup at assignment time, never by
    re-parsing the base expression.
    """

    def __init__(self):
        self._assignments: Dict[str, QueryAssignment] = {}

    def track(self, name: str, expression: str, line: int) -> Optional[QueryAssignment]:
        expression = expression.strip()

        chain = CHAIN_PATTERN.match(expression)
        if chain:
            base = self._assignments.get(chain.group(1))
            if base is not None:
                assignment = QueryAssignment(base.source + chain.group(2), line)
                self._assignments[name] = assignment
                return assignment

        if QUERY_ORIGIN_PATTERN.search(expression):
            assignment = QueryAssignment(expression, line)
            self._assignments[name] = assignment
            return assignment

        return None

    def resolve(self, name: str) -> Optional[QueryAssignment]:
        return self._assignments.get(name.strip())

    def __contains__(self, name: str) -> bool:
        return name in self._assignments

    def __len__(self) -> int:
        return len(self._assignments)


@dataclass
class LoopContext:
    """The loop currently being scanned."""
    start_line: int
    variable: str
    query_source: str
    query_line: int
    has_eager_loading: bool


@dataclass
class FormContext:
    """An open ``<form>`` tag waiting for its closing tag."""
    start_line: int
    start_text: str
    is_get: bool
    saw_csrf_token: bool = False


@dataclass
class LoadingStrategySummary:
    """Which eager loading styles the whole file uses."""
    with_lines: List[int] = field(default_factory=list)
    eagerly_lines: List[int] = field(default_factory=list)

    @property
    def uses_with(self) -> bool:
        return bool(self.with_lines)

    @property
    def uses_eagerly(self) -> bool:
        return bool(self.eagerly_lines)

    @property
    def is_mixed(self) -> bool:
        return self.uses_with and self.uses_eagerly


def resolve_iterable(tracker: QueryAssignmentTracker, iterable: str) -> Optional[QueryAssignment]:
    """
    Resolve a loop iterable through the tracker.

    Accepts the bare variable (``q``) or the variable followed by a call
    chain (``q.all()``); the latter keeps the base's definition line.
    """
    iterable = iterable.strip()
    assignment = tracker.resolve(iterable)
    if assignment is not None:
        return assignment
    chain = CHAIN_PATTERN.match(iterable)
    if chain:
        base = tracker.resolve(chain.group(1))
        if base is not None:
            return QueryAssignment(base.source + chain.group(2), base.line)
    return None


class ScanState:
    """
    All mutable state of one file scan.

    Loops are kept on a stack: an inner loop shadows the outer one while it
    is open and the outer loop becomes current again at its ``endfor``.
    """

    def __init__(self, file_path: str, lines: List[str], suppressions: SuppressionIndex):
        self.file_path = file_path
        self.lines = lines
        self.suppressions = suppressions
        self.queries = QueryAssignmentTracker()
        self.loops: List[LoopContext] = []
        self.form: Optional[FormContext] = None
        self.loading = LoadingStrategySummary()

        # Per-line events, reset by begin_line()
        self.opened_loop: Optional[LoopContext] = None
        self.closed_forms: List[FormContext] = []

        # Dedup keys live for the whole file
        self.seen_relations: Set[Tuple[int, str, str, str]] = set()
        self.seen_query_findings: Set[Tuple[str, int]] = set()

    @property
    def loop(self) -> Optional[LoopContext]:
        """The innermost open loop, if any."""
        return self.loops[-1] if self.loops else None

    def line_text(self, line_number: int) -> str:
        if 1 <= line_number <= len(self.lines):
            return self.lines[line_number - 1]
        return ""

    def begin_line(self):
        self.opened_loop = None
        self.closed_forms = []

    # Query assignments

    def track_assignments(self, line: str, line_number: int):
        for match in SET_PATTERN.finditer(line):
            self.queries.track(match.group(1), match.group(2), line_number)

    # Loops

    def open_loop(self, variable: str, iterable: str, line_number: int) -> LoopContext:
        source = iterable.strip()
        query_line = line_number
        assignment = resolve_iterable(self.queries, source)
        if assignment is not None:
            source = assignment.source
            query_line = assignment.line

        has_eager_loading = EAGER_LOAD_CALL in source
        if has_eager_loading:
            self.loading.with_lines.append(line_number)

        loop = LoopContext(
            start_line=line_number,
            variable=variable,
            query_source=source,
            query_line=query_line,
            has_eager_loading=has_eager_loading,
        )
        self.loops.append(loop)
        self.opened_loop = loop
        return loop

    def close_loop(self) -> Optional[LoopContext]:
        if not self.loops:
            return None
        return self.loops.pop()

    def update_loops(self, line: str, line_number: int, before_detectors: bool):
        """
        Open and close loops for this line.

        Called twice per line. An ``endfor`` that precedes a ``for`` on the
        same line closes the previous loop before the new one opens; any
        other ``endfor`` closes after the detectors have seen the line so a
        single-line loop body is still analysed.
        """
        opening = FOR_PATTERN.search(line)
        closing = ENDFOR_PATTERN.search(line)
        closes_first = bool(closing and opening and closing.start() < opening.start())

        if before_detectors:
            if closes_first:
                self.close_loop()
            if opening:
                self.open_loop(opening.group(1), opening.group(2), line_number)
        elif closing and not closes_first:
            self.close_loop()

    # Lazy eager loading

    def track_lazy_eager_loading(self, line: str, line_number: int):
        if LAZY_EAGER_CALL in line:
            self.loading.eagerly_lines.append(line_number)

    # Forms

    def update_form(self, line: str, line_number: int):
        opening = FORM_OPEN_PATTERN.search(line)
        closing = FORM_CLOSE_PATTERN.search(line)

        if opening and closing and closing.start() < opening.start():
            if self.form is not None:
                self.closed_forms.append(self.form)
                self.form = None
            closing = FORM_CLOSE_PATTERN.search(line, opening.end())

        if opening:
            self.form = FormContext(
                start_line=line_number,
                start_text=line.strip(),
                is_get=bool(FORM_GET_PATTERN.search(opening.group(0))),
            )

        if self.form is not None and CSRF_TOKEN_PATTERN.search(line):
            self.form.saw_csrf_token = True

        if self.form is not None and closing:
            self.closed_forms.append(self.form)
            self.form = None
