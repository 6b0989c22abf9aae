"""
Remediation engine for applying template fixes.

This module provides:
- Grouping of fixable findings per template
- Literal search/replace application in descending line order
- Before/after diffs
- Dry-run and backup support
"""

import difflib
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from craftaudit.core.findings import Finding

logger = logging.getLogger(__name__)


@dataclass
class FixResult:
    """Result of applying a single fix."""
    finding: Finding
    applied: bool
    error_message: Optional[str] = None


@dataclass
class FileFixResult:
    """All fixes applied to one template."""
    file_path: str
    original: str = ""
    fixed: str = ""
    diff: str = ""
    results: List[FixResult] = field(default_factory=list)
    written: bool = False
    backup_path: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def applied_count(self) -> int:
        return sum(1 for r in self.results if r.applied)

    @property
    def changed(self) -> bool:
        return self.original != self.fixed


@dataclass
class RemediationPlan:
    """Fixable findings grouped by file, plus what was left out."""
    fixes_by_file: Dict[str, List[Finding]]
    unsafe_skipped: List[Finding]
    manual: List[Finding]

    @property
    def fixable_count(self) -> int:
        return sum(len(findings) for findings in self.fixes_by_file.values())


class RemediationEngine:
    """
    Engine for applying template fixes.

    The remediation engine:
    1. Collects findings that carry a fix, safe ones only by default
    2. Applies them per file from the bottom up so line numbers stay valid
    3. Creates before/after diffs
    4. Optionally writes the result, keeping a ``.bak`` copy
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.dry_run = self.config.get("dry_run", True)
        self.backup = self.config.get("backup", True)
        self.allow_unsafe = self.config.get("allow_unsafe", False)

    def plan(self, findings: List[Finding]) -> RemediationPlan:
        """
        Decide which findings will be fixed.

        Args:
            findings: Findings from a scan, in discovery order.

        Returns:
            A RemediationPlan grouping the applicable findings by file.
        """
        fixes_by_file: Dict[str, List[Finding]] = {}
        unsafe_skipped: List[Finding] = []
        manual: List[Finding] = []

        for finding in findings:
            if finding.fix is None:
                manual.append(finding)
            elif not finding.fix.safe and not self.allow_unsafe:
                unsafe_skipped.append(finding)
            else:
                fixes_by_file.setdefault(finding.file, []).append(finding)

        return RemediationPlan(
            fixes_by_file=fixes_by_file,
            unsafe_skipped=unsafe_skipped,
            manual=manual,
        )

    def apply_to_content(self, content: str, findings: List[Finding]) -> Tuple[str, List[FixResult]]:
        """
        Apply the fixes of ``findings`` to one template's content.

        Fixes are applied in descending line order. Each one replaces the
        first occurrence of its search text on its line, or deletes the line
        when the replacement is empty. A fix whose search text is gone is
        skipped and reported, as is any fix aimed at a line already deleted.
        """
        lines = content.splitlines(keepends=True)
        results: List[FixResult] = []
        deleted: Set[int] = set()

        # Sort fixes by line number (descending) to avoid offset issues
        for finding in sorted(findings, key=lambda f: f.line, reverse=True):
            fix = finding.fix
            if fix is None:
                continue

            if finding.line in deleted:
                results.append(FixResult(finding, False, "Line removed by another fix"))
                continue

            index = finding.line - 1
            if not 0 <= index < len(lines):
                results.append(FixResult(finding, False, f"Line {finding.line} out of range"))
                continue

            text = lines[index]
            if fix.search not in text:
                results.append(FixResult(finding, False, "Search text no longer present on line"))
                continue

            if fix.deletes_line:
                del lines[index]
                deleted.add(finding.line)
            else:
                lines[index] = text.replace(fix.search, fix.replacement, 1)
            results.append(FixResult(finding, True))

        return "".join(lines), results

    def apply(
        self,
        findings: List[Finding],
        root: str = ".",
        dry_run: Optional[bool] = None,
        backup: Optional[bool] = None,
        plan: Optional[RemediationPlan] = None,
    ) -> List[FileFixResult]:
        """
        Apply fixes to the templates on disk.

        Args:
            findings: Findings whose ``file`` is relative to ``root``.
            root: Directory the finding paths are relative to.
            dry_run: If True, don't modify files. Overrides instance setting.
            backup: If True, write a ``.bak`` copy first. Overrides instance setting.
            plan: A plan already built from ``findings``; built here when omitted.

        Returns:
            One FileFixResult per touched file, sorted by path.
        """
        if dry_run is None:
            dry_run = self.dry_run
        if backup is None:
            backup = self.backup

        if plan is None:
            plan = self.plan(findings)
        file_results: List[FileFixResult] = []

        for rel_path in sorted(plan.fixes_by_file):
            full_path = os.path.join(root, rel_path)
            result = FileFixResult(file_path=rel_path)
            file_results.append(result)

            try:
                with open(full_path, "r", encoding="utf-8") as f:
                    result.original = f.read()
            except OSError as e:
                logger.warning("Could not read %s: %s", full_path, e)
                result.error_message = f"Error reading file: {e}"
                continue

            result.fixed, result.results = self.apply_to_content(
                result.original, plan.fixes_by_file[rel_path]
            )
            result.diff = self._generate_diff(result.original, result.fixed, rel_path)

            if dry_run or not result.changed:
                continue

            try:
                if backup:
                    result.backup_path = full_path + ".bak"
                    with open(result.backup_path, "w", encoding="utf-8") as f:
                        f.write(result.original)
                with open(full_path, "w", encoding="utf-8") as f:
                    f.write(result.fixed)
                result.written = True
                logger.info("Applied %d fixes to %s", result.applied_count, rel_path)
            except OSError as e:
                logger.warning("Could not write %s: %s", full_path, e)
                result.error_message = f"Error modifying file: {e}"

        return file_results

    def _generate_diff(self, original: str, fixed: str, file_path: str) -> str:
        """Generate a unified diff between original and fixed content."""
        diff = difflib.unified_diff(
            original.splitlines(keepends=True),
            fixed.splitlines(keepends=True),
            fromfile=f"a/{file_path}",
            tofile=f"b/{file_path}",
        )
        return "".join(diff)
