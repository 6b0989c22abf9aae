"""
Tests for the suppression index, rule metadata and query context helpers.
"""

import pytest
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from craftaudit.core.context import QueryAssignmentTracker, ScanState, resolve_iterable
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.metadata import (
    RULES, enrich, fingerprint, pattern_for_tag, suppression_tags_for
)
from craftaudit.core.suppression import SuppressionIndex


class TestSuppressionIndex:
    """Tests for parsing disable comments."""

    def test_marker_targets_next_line(self):
        """Test that a marker is recorded for the following line."""
        index = SuppressionIndex.from_content("{# craft-audit-disable-next-line #}\n{{ x }}")

        assert index.lines == [2]
        assert index.rules_for(2) == frozenset()
        assert index.is_suppressed(2, Pattern.DUMP_CALL)
        assert not index.is_suppressed(1, Pattern.DUMP_CALL)

    def test_rule_list(self):
        """Test that a comma-separated list is parsed."""
        index = SuppressionIndex.from_content(
            "{# craft-audit-disable-next-line n+1, template/missing-limit #}\nline"
        )

        assert index.rules_for(2) == {"n+1", "template/missing-limit"}
        assert index.is_suppressed(2, Pattern.N_PLUS_ONE)
        assert index.is_suppressed(2, Pattern.MISSING_LIMIT)
        assert not index.is_suppressed(2, Pattern.MISSING_STATUS_FILTER)

    def test_whitespace_control_marker(self):
        """Test that {#- ... -#} markers are recognized."""
        index = SuppressionIndex.from_content("{#- craft-audit-disable-next-line dump-call -#}\nx")
        assert index.is_suppressed(2, Pattern.DUMP_CALL)

    def test_markers_merge(self):
        """Test that two markers aimed at the same line are combined."""
        content = (
            "{# craft-audit-disable-next-line dump-call #}"
            "{# craft-audit-disable-next-line include-tag #}\nx"
        )
        index = SuppressionIndex.from_content(content)

        assert index.rules_for(2) == {"dump-call", "include-tag"}

    def test_bare_marker_wins_merge(self):
        """Test that merging with a bare marker suppresses everything."""
        content = (
            "{# craft-audit-disable-next-line dump-call #}"
            "{# craft-audit-disable-next-line #}\nx"
        )
        index = SuppressionIndex.from_content(content)

        assert index.is_suppressed(2, Pattern.FORM_MISSING_CSRF)

    @pytest.mark.parametrize("content", [
        "{# craft-audit-disable #}",
        "{# disable-next-line #}",
        "<!-- craft-audit-disable-next-line -->",
        "{# craft-audit-disable-next-line",
    ])
    def test_malformed_markers(self, content):
        """Test that malformed markers are ignored."""
        assert len(SuppressionIndex.from_content(content + "\nx")) == 0


class TestRuleMetadata:
    """Tests for the pattern metadata table."""

    def test_every_pattern_has_metadata(self):
        """Test that the table covers the closed pattern set."""
        assert set(RULES) == set(Pattern)
        for info in RULES.values():
            assert info.rule_id.startswith(("template/", "security/"))
            assert info.docs_url.startswith("https://")
            assert 0 < info.confidence <= 1

    def test_suppression_tags(self):
        """Test the accepted forms of a tag."""
        tags = suppression_tags_for(Pattern.N_PLUS_ONE)

        assert {"n+1", "template/n+1", "security/n+1", "n-plus-one"} <= tags
        assert "template/n-plus-one-loop" in tags

    def test_pattern_for_tag(self):
        """Test reverse lookup of tags and rule ids."""
        assert pattern_for_tag("deprecated") == Pattern.DEPRECATED_API
        assert pattern_for_tag("security/xss-raw-output") == Pattern.XSS_RAW_OUTPUT
        assert pattern_for_tag("nope") is None

    def test_fingerprint(self):
        """Test fingerprint construction."""
        finding = Finding(
            severity=Severity.MEDIUM,
            pattern=Pattern.MISSING_LIMIT,
            file="templates/news.twig",
            line=4,
            message="Query in loop without .limit() may fetch too many results",
            suggestion="Add .limit(n) to paginate results",
            code="craft.entries.all()",
        )

        assert fingerprint(finding) == (
            "template/missing-limit:templates/news.twig:4:"
            "Query in loop without .limit() may fetch too many results"
        )
        enriched = enrich(finding)
        assert enriched["rule_id"] == "template/missing-limit"
        assert enriched["fingerprint"] == fingerprint(finding)
        assert "fix" not in enriched


class TestQueryContext:
    """Tests for query tracking helpers."""

    def test_track_origin(self):
        """Test that an assignment from a query origin is tracked."""
        tracker = QueryAssignmentTracker()
        assignment = tracker.track("news", "craft.entries.section('news')", 3)

        assert assignment.line == 3
        assert "news" in tracker
        assert tracker.resolve("news").source == "craft.entries.section('news')"

    def test_track_non_query(self):
        """Test that other assignments are ignored."""
        tracker = QueryAssignmentTracker()

        assert tracker.track("title", "entry.title|upper", 1) is None
        assert len(tracker) == 0

    def test_chain_takes_precedence(self):
        """Test that a chain off a tracked variable keeps the base source."""
        tracker = QueryAssignmentTracker()
        tracker.track("q", "craft.entries()", 1)
        assignment = tracker.track("q2", "q.type('article')", 5)

        assert assignment.source == "craft.entries().type('article')"
        assert assignment.line == 5

    def test_origin_requires_word_boundary(self):
        """Test that craft.entriesFoo is not a query origin."""
        tracker = QueryAssignmentTracker()
        assert tracker.track("x", "craft.entriesFoo", 1) is None

    def test_resolve_iterable_suffix(self):
        """Test resolving `q.all()` through its base variable."""
        tracker = QueryAssignmentTracker()
        tracker.track("q", "craft.users.group('staff')", 2)

        assignment = resolve_iterable(tracker, "q.all()")

        assert assignment.source == "craft.users.group('staff').all()"
        assert assignment.line == 2
        assert resolve_iterable(tracker, "other.all()") is None

    def test_loop_stack(self):
        """Test that loops nest and unwind."""
        state = ScanState("t.twig", [], SuppressionIndex({}))
        state.update_loops("{% for a in craft.entries.limit(1) %}", 1, before_detectors=True)
        state.update_loops("{% for b in a.children.all() %}", 2, before_detectors=True)

        assert [loop.variable for loop in state.loops] == ["a", "b"]

        state.update_loops("{% endfor %}", 3, before_detectors=True)
        assert len(state.loops) == 2
        state.update_loops("{% endfor %}", 3, before_detectors=False)
        assert state.loop.variable == "a"

    def test_endfor_before_for_on_same_line(self):
        """Test that `{% endfor %}{% for %}` closes the old loop first."""
        state = ScanState("t.twig", [], SuppressionIndex({}))
        state.update_loops("{% for a in craft.entries.limit(1) %}", 1, before_detectors=True)
        line = "{% endfor %}{% for b in craft.assets.limit(1) %}"
        state.update_loops(line, 2, before_detectors=True)
        state.update_loops(line, 2, before_detectors=False)

        assert [loop.variable for loop in state.loops] == ["b"]
