"""
Static rule metadata keyed by pattern.

Maps every pattern to a stable rule id, a documentation URL and a fixed
confidence score, and builds the fingerprints used by baselines.
"""

from dataclasses import dataclass
from typing import Dict, Set

from craftaudit.core.findings import Finding, Pattern


@dataclass(frozen=True)
class RuleInfo:
    """Metadata for a single pattern."""
    rule_id: str
    title: str
    docs_url: str
    confidence: float
    suppression_tags: tuple


RULES: Dict[Pattern, RuleInfo] = {
    Pattern.N_PLUS_ONE: RuleInfo(
        rule_id="template/n-plus-one-loop",
        title="Potential N+1 query in loop",
        docs_url="https://craftcms.com/docs/5.x/development/performance",
        confidence=0.82,
        suppression_tags=("n+1", "n-plus-one"),
    ),
    Pattern.MISSING_LIMIT: RuleInfo(
        rule_id="template/missing-limit",
        title="Unbounded query in loop",
        docs_url="https://craftcms.com/docs/5.x/development/element-queries",
        confidence=0.74,
        suppression_tags=("missing-limit",),
    ),
    Pattern.MISSING_STATUS_FILTER: RuleInfo(
        rule_id="template/missing-status-filter",
        title="Query without status filter",
        docs_url="https://craftcms.com/docs/5.x/development/element-queries#status",
        confidence=0.70,
        suppression_tags=("missing-status-filter",),
    ),
    Pattern.DEPRECATED_API: RuleInfo(
        rule_id="template/deprecated-api",
        title="Deprecated Craft/Twig API usage",
        docs_url="https://craftcms.com/docs/5.x/upgrade",
        confidence=0.95,
        suppression_tags=("deprecated", "deprecated-api"),
    ),
    Pattern.XSS_RAW_OUTPUT: RuleInfo(
        rule_id="security/xss-raw-output",
        title="Unescaped output with |raw",
        docs_url="https://craftcms.com/docs/5.x/development/twig#escaping",
        confidence=0.88,
        suppression_tags=("xss-raw-output",),
    ),
    Pattern.SSTI_DYNAMIC_INCLUDE: RuleInfo(
        rule_id="security/ssti-dynamic-include",
        title="Dynamic template include",
        docs_url=(
            "https://owasp.org/www-project-web-security-testing-guide/v42/"
            "4-Web_Application_Security_Testing/07-Input_Validation_Testing/"
            "18-Testing_for_Server-side_Template_Injection"
        ),
        confidence=0.92,
        suppression_tags=("ssti-dynamic-include",),
    ),
    Pattern.DUMP_CALL: RuleInfo(
        rule_id="template/dump-call",
        title="Debug dump left in template",
        docs_url="https://craftcms.com/docs/5.x/development/twig#debugging",
        confidence=0.98,
        suppression_tags=("dump-call",),
    ),
    Pattern.INCLUDE_TAG: RuleInfo(
        rule_id="template/include-tag",
        title="Include tag instead of include() function",
        docs_url="https://twig.symfony.com/doc/3.x/functions/include.html",
        confidence=0.95,
        suppression_tags=("include-tag",),
    ),
    Pattern.FORM_MISSING_CSRF: RuleInfo(
        rule_id="template/form-missing-csrf",
        title="Form without CSRF token",
        docs_url="https://craftcms.com/docs/5.x/development/forms#csrf",
        confidence=0.85,
        suppression_tags=("form-missing-csrf",),
    ),
    Pattern.MIXED_LOADING_STRATEGY: RuleInfo(
        rule_id="template/mixed-loading-strategy",
        title="Mixed eager loading strategies",
        docs_url="https://craftcms.com/docs/5.x/development/eager-loading.html",
        confidence=0.90,
        suppression_tags=("mixed-loading-strategy",),
    ),
}

SUPPRESSION_PREFIXES = ("template/", "security/")


def get_rule_info(pattern: Pattern) -> RuleInfo:
    """Return the metadata for a pattern."""
    return RULES[pattern]


def rule_id_for(pattern: Pattern) -> str:
    return RULES[pattern].rule_id


def suppression_tags_for(pattern: Pattern) -> Set[str]:
    """
    Return every tag that silences ``pattern`` in a disable comment.

    Bare tags are accepted as-is or with a category prefix, and the full
    rule id is accepted too.
    """
    info = RULES[pattern]
    tags = {info.rule_id}
    for tag in info.suppression_tags:
        tags.add(tag)
        for prefix in SUPPRESSION_PREFIXES:
            tags.add(prefix + tag)
    return tags


def pattern_for_tag(tag: str):
    """Find the pattern a suppression tag or rule id refers to, if any."""
    for pattern in RULES:
        if tag in suppression_tags_for(pattern):
            return pattern
    return None


def fingerprint(finding: Finding) -> str:
    """Build the reproducible identifier used by baselines."""
    return f"{rule_id_for(finding.pattern)}:{finding.file}:{finding.line}:{finding.message}"


def enrich(finding: Finding) -> Dict:
    """Return the finding as a dictionary with rule metadata merged in."""
    info = RULES[finding.pattern]
    data = finding.to_dict()
    data["rule_id"] = info.rule_id
    data["confidence"] = info.confidence
    data["docs_url"] = info.docs_url
    data["fingerprint"] = fingerprint(finding)
    return data
