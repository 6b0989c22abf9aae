"""
Tests for the single-pass template scanner.
"""

import pytest
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from craftaudit.core.scanner import TemplateScanner, scan_template
from craftaudit.core.findings import Finding, Pattern, Severity
from craftaudit.core.rules import DetectorRegistry, registry


def by_pattern(findings, pattern):
    return [f for f in findings if f.pattern == pattern]


class TestScanner:
    """Tests for scan ordering and determinism."""

    def test_empty_template(self):
        """Test that an empty template has no findings."""
        assert scan_template("empty.twig", "") == []

    def test_scan_is_deterministic(self):
        """Test that scanning the same content twice gives identical output."""
        content = """
{% set posts = craft.entries.section('blog').all() %}
{% for post in posts %}
  {{ post.author.one().name }}
  {{ post.body|raw }}
  {{ dump(post) }}
{% endfor %}
<form method="post"></form>
"""
        first = scan_template("blog/index.twig", content)
        second = scan_template("blog/index.twig", content)

        assert first == second
        assert [f.to_dict() for f in first] == [f.to_dict() for f in second]

    def test_findings_in_discovery_order(self):
        """Test that findings follow line order and the fixed detector order."""
        content = """{{ dump(entry) }}
{% for entry in craft.entries.all() %}
{{ entry.author.one() }}
{% endfor %}
"""
        findings = scan_template("t.twig", content)
        patterns = [f.pattern for f in findings]

        assert patterns == [
            Pattern.DUMP_CALL,
            Pattern.MISSING_LIMIT,
            Pattern.MISSING_STATUS_FILTER,
            Pattern.N_PLUS_ONE,
        ]
        assert [f.line for f in findings] == [1, 2, 2, 3]

    def test_findings_carry_file_and_category(self):
        """Test that every finding has the file path and template category."""
        findings = scan_template("partials/card.twig", "{{ dump(entry) }}")

        assert len(findings) == 1
        assert findings[0].file == "partials/card.twig"
        assert findings[0].category == "template"

    def test_code_is_trimmed(self):
        """Test that the code snippet is the trimmed source line."""
        findings = scan_template("t.twig", "      {{ dump(entry) }}   ")
        assert findings[0].code == "{{ dump(entry) }}"

    def test_custom_detector_list(self):
        """Test that a scanner can run a subset of detectors."""
        scanner = TemplateScanner([registry.get_detector(Pattern.DUMP_CALL)])
        content = "{{ dump(entry) }}\n{{ entry.body|raw }}"

        findings = scanner.scan("t.twig", content)

        assert [f.pattern for f in findings] == [Pattern.DUMP_CALL]


class TestSuppression:
    """Tests for inline disable comments."""

    def test_marker_without_rules_suppresses_everything(self):
        """Test that a bare marker silences all findings on the next line."""
        content = """{# craft-audit-disable-next-line #}
{% for entry in craft.entries.all() %}
{% endfor %}
"""
        findings = scan_template("t.twig", content)
        assert findings == []

    def test_marker_with_rule_only_suppresses_that_rule(self):
        """Test that naming missing-limit keeps missing-status-filter."""
        content = """{# craft-audit-disable-next-line missing-limit #}
{% for entry in craft.entries.all() %}
{% endfor %}
"""
        findings = scan_template("t.twig", content)

        assert by_pattern(findings, Pattern.MISSING_LIMIT) == []
        status = by_pattern(findings, Pattern.MISSING_STATUS_FILTER)
        assert len(status) == 1
        assert status[0].line == 2

    def test_prefixed_tag(self):
        """Test that category-prefixed tags are accepted."""
        content = """{# craft-audit-disable-next-line security/xss-raw-output #}
{{ entry.body|raw }}
{{ entry.summary|raw }}
"""
        findings = scan_template("t.twig", content)

        assert [f.line for f in findings] == [3]

    def test_marker_only_affects_next_line(self):
        """Test that a marker does not reach two lines down."""
        content = """{# craft-audit-disable-next-line dump-call #}

{{ dump(entry) }}
"""
        findings = scan_template("t.twig", content)
        assert len(by_pattern(findings, Pattern.DUMP_CALL)) == 1

    def test_malformed_marker_is_ignored(self):
        """Test that a broken marker is treated as a normal comment."""
        content = """{# craft-audit-disable-nextline #}
{{ dump(entry) }}
"""
        findings = scan_template("t.twig", content)
        assert len(findings) == 1

    def test_suppressed_relation_access_does_not_consume_dedup(self):
        """Test that a suppressed N+1 still lets the next identical access report."""
        content = """{% for entry in craft.entries.section('news').limit(5) %}
{# craft-audit-disable-next-line n+1 #}
{{ entry.author.one() }}
{{ entry.author.one() }}
{% endfor %}
"""
        findings = by_pattern(scan_template("t.twig", content), Pattern.N_PLUS_ONE)

        assert len(findings) == 1
        assert findings[0].line == 4


class TestQueryTracking:
    """Tests for query assignment resolution and loop handling."""

    def test_chained_assignment_resolution(self):
        """Test that a chained query is attributed to its own definition line."""
        content = """{% set q = craft.entries() %}
{% set q2 = q.section('news') %}
{% for e in q2 %}
  {{ e.title }}
{% endfor %}
"""
        findings = by_pattern(scan_template("t.twig", content), Pattern.MISSING_LIMIT)

        assert len(findings) == 1
        assert findings[0].line == 2
        assert findings[0].code == "craft.entries().section('news')"

    def test_chained_narrowing_is_recognized(self):
        """Test that a narrowing call added through a chain exempts the query."""
        content = """{% set q = craft.entries() %}
{% set q2 = q.relatedTo(category) %}
{% for e in q2 %}{% endfor %}
"""
        findings = scan_template("t.twig", content)
        assert by_pattern(findings, Pattern.MISSING_LIMIT) == []

    def test_iterable_with_suffix_resolves_to_base_line(self):
        """Test that `for x in q.all()` points back at q's definition."""
        content = """{% set q = craft.entries.section('news') %}
{% for e in q.all() %}
{% endfor %}
"""
        findings = by_pattern(scan_template("t.twig", content), Pattern.MISSING_LIMIT)

        assert len(findings) == 1
        assert findings[0].line == 1
        assert findings[0].code == "craft.entries.section('news').all()"

    def test_two_loops_over_same_query_report_once(self):
        """Test that query findings are deduplicated per definition line."""
        content = """{% set q = craft.entries.section('news') %}
{% for e in q %}{% endfor %}
{% for e in q %}{% endfor %}
"""
        findings = by_pattern(scan_template("t.twig", content), Pattern.MISSING_LIMIT)
        assert len(findings) == 1

    def test_multiple_sets_on_one_line(self):
        """Test that every assignment on a line is tracked."""
        content = """{% set a = 1 %}{% set q = craft.assets.volume('images') %}
{% for asset in q %}{% endfor %}
"""
        findings = by_pattern(scan_template("t.twig", content), Pattern.MISSING_LIMIT)

        assert len(findings) == 1
        assert findings[0].line == 1

    def test_nested_loops_keep_outer_context(self):
        """Test that the outer loop is current again after the inner loop closes."""
        content = """{% for entry in craft.entries.section('news').limit(10) %}
  {% for block in entry.body.all() %}
    {{ entry.author.one() }}
  {% endfor %}
  {{ entry.category.one() }}
{% endfor %}
"""
        findings = by_pattern(scan_template("t.twig", content), Pattern.N_PLUS_ONE)

        fields = [f.message for f in findings]
        assert fields == [
            "Potential N+1 query: entry.body.all() inside loop",
            "Potential N+1 query: entry.author.one() inside loop",
            "Potential N+1 query: entry.category.one() inside loop",
        ]
        assert [f.line for f in findings] == [2, 3, 5]

    def test_access_after_loop_is_not_flagged(self):
        """Test that relation access outside any loop is ignored."""
        content = """{% for entry in craft.entries.limit(3) %}{% endfor %}
{{ entry.author.one() }}
"""
        findings = scan_template("t.twig", content)
        assert by_pattern(findings, Pattern.N_PLUS_ONE) == []

    def test_single_line_loop_body_is_analysed(self):
        """Test that a loop opened and closed on one line still sees its body."""
        content = "{% for e in craft.entries.limit(5) %}{{ e.author.one() }}{% endfor %}"
        findings = by_pattern(scan_template("t.twig", content), Pattern.N_PLUS_ONE)
        assert len(findings) == 1


class TestDetectorRegistry:
    """Tests for detector registration."""

    def test_all_patterns_registered(self):
        """Test that there is one detector per pattern."""
        assert registry.detector_count == len(Pattern)
        assert set(registry.patterns) == set(Pattern)

    def test_detectors_sorted_by_order(self):
        """Test that detectors run in their declared order."""
        orders = [d.metadata.order for d in registry.get_detectors()]
        assert orders == sorted(orders)
        assert registry.patterns[0] == Pattern.MISSING_LIMIT
        assert registry.patterns[-1] == Pattern.MIXED_LOADING_STRATEGY

    def test_duplicate_pattern_rejected(self):
        """Test that two detectors cannot claim the same pattern."""
        local_registry = DetectorRegistry()
        first = type(registry.get_detector(Pattern.DUMP_CALL))
        local_registry.register(first)

        class AnotherDumpDetector(first):
            pass

        with pytest.raises(ValueError):
            local_registry.register(AnotherDumpDetector)


class TestFindings:
    """Tests for finding data structures."""

    def test_finding_is_immutable(self):
        """Test that findings cannot be modified after creation."""
        finding = scan_template("t.twig", "{{ dump(x) }}")[0]
        with pytest.raises(Exception):
            finding.line = 10

    def test_finding_round_trip(self):
        """Test that a finding survives to_dict/from_dict."""
        finding = scan_template("t.twig", "{{ craft.request.getParam('q') }}")[0]
        restored = Finding.from_dict(finding.to_dict())

        assert restored == finding
        assert restored.fix.safe is True

    def test_severity_comparison(self):
        """Test severity ordering."""
        assert Severity.HIGH > Severity.MEDIUM
        assert Severity.MEDIUM > Severity.LOW
        assert Severity.LOW > Severity.INFO
        assert Severity.INFO <= Severity.INFO
