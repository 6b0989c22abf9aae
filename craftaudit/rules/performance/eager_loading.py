"""
Eager loading detection: N+1 relation access and mixed loading styles.
"""

import re
from functools import lru_cache
from typing import Generator, Set

from craftaudit.core.context import LAZY_EAGER_CALL, ScanState
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.rules import Detector, DetectorMetadata, LineContext, detector


RELATION_ACCESS_METHODS = ("one", "all", "first", "last")

# Scalar element properties that never trigger a relation query
SKIP_FIELDS = frozenset({
    "id",
    "title",
    "slug",
    "url",
    "status",
    "dateCreated",
    "dateUpdated",
})


@lru_cache(maxsize=256)
def relation_access_pattern(variable: str) -> re.Pattern:
    """Match ``<variable>.<field>.one()`` and friends."""
    methods = "|".join(RELATION_ACCESS_METHODS)
    return re.compile(r"(?<![\w.])" + re.escape(variable) + r"\.(\w+)\.(" + methods + r")\(\)")


@detector
class NPlusOneDetector(Detector):
    """
    Detects relation queries executed once per loop iteration.

    ``{{ entry.category.one() }}`` inside ``{% for entry in ... %}`` runs a
    query for every entry unless the loop's query eager loads the relation
    with ``.with()`` or the access itself uses ``.eagerly()``. Each
    (query line, loop variable, field, method) combination is reported once
    per file.
    """

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.N_PLUS_ONE,
            name="Potential N+1 query in loop",
            severity=Severity.HIGH,
            order=30,
            description="Relation field query methods are used inside loops without eager loading.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        shadowed: Set[str] = set()
        for loop in reversed(state.loops):
            if loop.variable in shadowed:
                continue
            shadowed.add(loop.variable)
            if loop.has_eager_loading:
                continue

            for match in relation_access_pattern(loop.variable).finditer(line.text):
                field_name, method = match.group(1), match.group(2)
                if field_name in SKIP_FIELDS:
                    continue
                if f"{loop.variable}.{field_name}{LAZY_EAGER_CALL}" in line.text:
                    continue

                key = (loop.query_line, loop.variable, field_name, method)
                if key in state.seen_relations or self.is_suppressed(state, line.number):
                    continue
                state.seen_relations.add(key)

                access = f"{loop.variable}.{field_name}.{method}()"
                yield self.create_finding(
                    state,
                    line=line.number,
                    message=f"Potential N+1 query: {access} inside loop",
                    suggestion=(
                        f"Add .with(['{field_name}']) to the query on line {loop.query_line}, "
                        f"or use {loop.variable}.{field_name}.eagerly().{method}()"
                    ),
                    code=line.code,
                )


@detector
class MixedLoadingStrategyDetector(Detector):
    """Notes templates that use both ``.with()`` and ``.eagerly()``."""

    @property
    def metadata(self) -> DetectorMetadata:
        return DetectorMetadata(
            pattern=Pattern.MIXED_LOADING_STRATEGY,
            name="Mixed eager loading strategies",
            severity=Severity.INFO,
            order=100,
            description="Template uses both .with() and .eagerly() eager loading.",
        )

    def check_line(self, line: LineContext, state: ScanState) -> Generator[Finding, None, None]:
        yield from ()

    def finish(self, state: ScanState) -> Generator[Finding, None, None]:
        summary = state.loading
        if not summary.is_mixed:
            return

        line_number = summary.with_lines[0] if summary.with_lines else 1
        yield self.create_finding(
            state,
            line=line_number,
            message="Template mixes .with() eager loading and .eagerly() lazy eager loading",
            suggestion="Standardize on one eager loading approach for this template",
            code=state.line_text(line_number).strip(),
        )
