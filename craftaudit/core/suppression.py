"""
Inline suppression comments.

A comment of the form::

    {# craft-audit-disable-next-line #}
    {# craft-audit-disable-next-line n+1, missing-limit #}

silences findings on the line that follows it, either for every rule or
for the listed rule tags only.
"""

import re
from typing import Dict, FrozenSet, Iterable, List

from craftaudit.core.findings import Pattern
from craftaudit.core.metadata import suppression_tags_for

DISABLE_MARKER = "craft-audit-disable-next-line"

SUPPRESSION_PATTERN = re.compile(
    r"\{#-?\s*" + re.escape(DISABLE_MARKER) + r"(?:\s+([\w+/,\s-]*?))?\s*-?#\}"
)

ALL_RULES: FrozenSet[str] = frozenset()


class SuppressionIndex:
    """
    Map of line number to the set of rule tags suppressed on that line.

    An empty set means every rule is suppressed on the line. The index is
    built once per file and only read during the scan.
    """

    def __init__(self, entries: Dict[int, FrozenSet[str]]):
        self._entries = dict(entries)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> "SuppressionIndex":
        entries: Dict[int, FrozenSet[str]] = {}
        for line_number, line in enumerate(lines, start=1):
            for match in SUPPRESSION_PATTERN.finditer(line):
                target = line_number + 1
                rules = _parse_rules(match.group(1))
                if target in entries:
                    existing = entries[target]
                    # Either marker suppressing everything wins.
                    if not existing or not rules:
                        entries[target] = ALL_RULES
                    else:
                        entries[target] = existing | rules
                else:
                    entries[target] = rules
        return cls(entries)

    @classmethod
    def from_content(cls, content: str) -> "SuppressionIndex":
        return cls.from_lines(content.splitlines())

    def rules_for(self, line_number: int):
        """Return the suppressed tag set for a line, or None if unsuppressed."""
        return self._entries.get(line_number)

    def is_suppressed(self, line_number: int, pattern: Pattern) -> bool:
        """Check whether a finding for ``pattern`` on ``line_number`` is silenced."""
        rules = self._entries.get(line_number)
        if rules is None:
            return False
        if not rules:
            return True
        return not rules.isdisjoint(suppression_tags_for(pattern))

    @property
    def lines(self) -> List[int]:
        return sorted(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, line_number: int) -> bool:
        return line_number in self._entries


def _parse_rules(raw) -> FrozenSet[str]:
    if not raw:
        return ALL_RULES
    return frozenset(tag.strip() for tag in raw.split(",") if tag.strip())
