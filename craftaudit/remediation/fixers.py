"""
Fix metadata for template findings.

Each fixer turns the text a detector matched into a literal search/replace
pair. Nothing here re-parses the template: the search string always comes
straight from the matched text, so a consumer can apply it with a plain
substring replace.
"""

import re
from abc import ABC, abstractmethod
from typing import Dict, FrozenSet, Optional

from craftaudit.core.findings import Fix, Pattern


DEFAULT_LIMIT = 100

# Deprecated API prefixes with a one-to-one modern spelling
DEPRECATED_REPLACEMENTS: Dict[str, str] = {
    "craft.request.": "craft.app.request.",
    "craft.config.": "craft.app.config.general.",
    "craft.session.": "craft.app.session.",
    ".getUrl()": ".url",
}

LAST_CALL_PATTERN = re.compile(r"\.\w+(?:\([^()]*\))?$")


class BaseFixer(ABC):
    """Base class for fix generators."""

    safe: bool = True

    @property
    @abstractmethod
    def pattern(self) -> Pattern:
        """Return the pattern this fixer handles."""
        pass

    @abstractmethod
    def build(self, matched_text: str, **details) -> Optional[Fix]:
        """
        Build a fix from the text a detector matched.

        Args:
            matched_text: The snippet the detector matched.
            **details: Extra pieces of the match some fixers need.

        Returns:
            The fix, or None when the match does not support one.
        """
        pass

    def make_fix(self, search: str, replacement: str, description: str) -> Fix:
        return Fix(safe=self.safe, search=search, replacement=replacement, description=description)


class LimitFixer(BaseFixer):
    """Adds ``.limit(100)`` to an unbounded query."""

    @property
    def pattern(self) -> Pattern:
        return Pattern.MISSING_LIMIT

    def build(self, matched_text: str, **details) -> Optional[Fix]:
        description = f"Add .limit({DEFAULT_LIMIT}) to bound the query"
        if ".all()" in matched_text:
            return self.make_fix(".all()", f".limit({DEFAULT_LIMIT}).all()", description)

        last_call = LAST_CALL_PATTERN.search(matched_text.strip())
        if last_call is None:
            return None
        search = last_call.group(0)
        return self.make_fix(search, f"{search}.limit({DEFAULT_LIMIT})", description)


class StatusFilterFixer(BaseFixer):
    """Restricts a fetch-all query to live elements."""

    @property
    def pattern(self) -> Pattern:
        return Pattern.MISSING_STATUS_FILTER

    def build(self, matched_text: str, **details) -> Optional[Fix]:
        if ".all()" not in matched_text:
            return None
        return self.make_fix(
            ".all()",
            ".status('live').all()",
            "Add .status('live') so only live elements are fetched",
        )


class DeprecatedApiFixer(BaseFixer):
    """Swaps a deprecated API prefix for its current spelling."""

    @property
    def pattern(self) -> Pattern:
        return Pattern.DEPRECATED_API

    def build(self, matched_text: str, **details) -> Optional[Fix]:
        replacement = DEPRECATED_REPLACEMENTS.get(matched_text)
        if replacement is None:
            return None
        return self.make_fix(
            matched_text,
            replacement,
            f"Replace {matched_text} with {replacement}",
        )


class EscapeRawFixer(BaseFixer):
    """Escapes a value before it reaches ``|raw``."""

    safe = False

    @property
    def pattern(self) -> Pattern:
        return Pattern.XSS_RAW_OUTPUT

    def build(self, matched_text: str, **details) -> Optional[Fix]:
        return self.make_fix(
            matched_text,
            "|e" + matched_text,
            "Escape the value with |e before |raw (changes rendered HTML)",
        )


class DumpRemovalFixer(BaseFixer):
    """Deletes a debug dump line."""

    safe = False

    @property
    def pattern(self) -> Pattern:
        return Pattern.DUMP_CALL

    def build(self, matched_text: str, **details) -> Optional[Fix]:
        if not matched_text.strip():
            return None
        return self.make_fix(matched_text, "", "Remove the debug output line")


class IncludeTagFixer(BaseFixer):
    """Rewrites ``{% include %}`` as the ``include()`` function."""

    @property
    def pattern(self) -> Pattern:
        return Pattern.INCLUDE_TAG

    def build(self, matched_text: str, **details) -> Optional[Fix]:
        template = details.get("template")
        if not template:
            return None

        arguments = [template]
        variables = details.get("variables")
        if variables:
            arguments.append(variables.strip())
        if details.get("only"):
            arguments.append("with_context = false")
        if details.get("ignore_missing"):
            arguments.append("ignore_missing = true")

        replacement = "{{ include(" + ", ".join(arguments) + ") }}"
        return self.make_fix(
            matched_text,
            replacement,
            "Use the include() function instead of the include tag",
        )


# Registry of fixers
_fixers: Dict[Pattern, BaseFixer] = {}

# Patterns that never carry a fix
NO_FIX: FrozenSet[Pattern] = frozenset({
    Pattern.N_PLUS_ONE,
    Pattern.SSTI_DYNAMIC_INCLUDE,
    Pattern.FORM_MISSING_CSRF,
    Pattern.MIXED_LOADING_STRATEGY,
})


def register_fixer(fixer: BaseFixer):
    """Register a fixer instance."""
    _fixers[fixer.pattern] = fixer


def get_fixer(pattern: Pattern) -> Optional[BaseFixer]:
    """Get the fixer for a pattern."""
    return _fixers.get(pattern)


def attach_fix(pattern: Pattern, matched_text: str, line: Optional[str] = None, **details) -> Optional[Fix]:
    """
    Build the fix metadata for a finding.

    When ``line`` is given, a safe fix is only returned if its search
    string occurs literally in that line.
    """
    if pattern in NO_FIX:
        return None

    fixer = _fixers.get(pattern)
    if fixer is None:
        raise KeyError(f"No fixer registered for pattern {pattern.value}")

    fix = fixer.build(matched_text, **details)
    if fix is None:
        return None
    if fix.safe and line is not None and fix.search not in line:
        return None
    return fix


# Register all fixers
register_fixer(LimitFixer())
register_fixer(StatusFilterFixer())
register_fixer(DeprecatedApiFixer())
register_fixer(EscapeRawFixer())
register_fixer(DumpRemovalFixer())
register_fixer(IncludeTagFixer())
