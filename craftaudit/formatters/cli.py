"""
CLI output formatter for human-readable results.
"""

import sys
from typing import Dict, List

from craftaudit.core.findings import Finding, ScanResult, Severity
from craftaudit.core.metadata import get_rule_info
from craftaudit.remediation.engine import FileFixResult


# ANSI color codes
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"


def supports_color() -> bool:
    """Check if the terminal supports color output."""
    if not hasattr(sys.stdout, "isatty"):
        return False
    return sys.stdout.isatty()


class CLIFormatter:
    """
    Formats scan results for human-readable CLI output.
    """

    def __init__(self, use_color: bool = True, verbose: bool = False):
        self.use_color = use_color and supports_color()
        self.verbose = verbose

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_color:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _severity_color(self, severity: Severity) -> str:
        colors = {
            Severity.HIGH: Colors.RED,
            Severity.MEDIUM: Colors.YELLOW,
            Severity.LOW: Colors.BLUE,
            Severity.INFO: Colors.DIM,
        }
        return colors.get(severity, "")

    def _severity_label(self, severity: Severity) -> str:
        label = f"[{severity.value.upper()}]"
        return self._color(label, self._severity_color(severity))

    def format_result(self, result: ScanResult) -> str:
        """Format a complete scan result."""
        lines = []

        # Header
        lines.append("")
        lines.append(self._color("=" * 70, Colors.DIM))
        lines.append(self._color(" TEMPLATE AUDIT RESULTS ", Colors.BOLD))
        lines.append(self._color("=" * 70, Colors.DIM))
        lines.append("")

        # Summary
        lines.append(self._color("Summary", Colors.BOLD))
        lines.append(self._color("-" * 40, Colors.DIM))
        lines.append(f"  Templates scanned: {result.files_scanned}")
        lines.append(f"  Scan time:         {result.scan_time_seconds:.2f}s")
        lines.append("")

        lines.append(self._color("Findings", Colors.BOLD))
        lines.append(self._color("-" * 40, Colors.DIM))
        if result.total_findings == 0:
            lines.append(self._color("  No issues found!", Colors.GREEN))
        else:
            lines.append(f"  {self._severity_label(Severity.HIGH)} {result.high_count}")
            lines.append(f"  {self._severity_label(Severity.MEDIUM)} {result.medium_count}")
            lines.append(f"  {self._severity_label(Severity.LOW)} {result.low_count}")
            lines.append(f"  {self._severity_label(Severity.INFO)} {result.info_count}")
        lines.append("")

        # Detailed findings, grouped by file in discovery order
        if result.total_findings > 0:
            findings_by_file: Dict[str, List[Finding]] = {}
            for finding in result.findings:
                findings_by_file.setdefault(finding.file, []).append(finding)

            for file_path, findings in findings_by_file.items():
                lines.append(self._color(file_path, Colors.CYAN))
                lines.append("")
                for finding in findings:
                    lines.extend(self._format_finding(finding))
                    lines.append("")

        if result.errors:
            lines.append(self._color("Errors", Colors.RED))
            lines.append(self._color("-" * 40, Colors.DIM))
            for error in result.errors:
                lines.append(f"  - {error}")
            lines.append("")

        return "\n".join(lines)

    def _format_finding(self, finding: Finding) -> List[str]:
        info = get_rule_info(finding.pattern)
        lines = []

        lines.append(f"  {self._severity_label(finding.severity)} {self._color(finding.message, Colors.BOLD)}")
        lines.append(f"  {self._color('Location:', Colors.DIM)} {finding.file}:{finding.line}")
        lines.append(f"  {self._color('Rule:', Colors.DIM)} {info.rule_id}")
        if finding.code:
            lines.append(f"  {self._color('Code:', Colors.DIM)} {finding.code}")
        lines.append(f"  {self._color('Fix:', Colors.GREEN)} {finding.suggestion}")

        if finding.fix:
            kind = "safe" if finding.fix.safe else "unsafe"
            lines.append(f"  {self._color('Auto-fix:', Colors.DIM)} {finding.fix.description} ({kind})")

        if self.verbose:
            lines.append(f"  {self._color('Docs:', Colors.DIM)} {info.docs_url}")

        return lines

    def format_fix_results(self, results: List[FileFixResult], dry_run: bool) -> str:
        """Format the outcome of a fix run."""
        lines = []
        applied = sum(r.applied_count for r in results)

        for result in results:
            if result.error_message:
                lines.append(self._color(f"{result.file_path}: {result.error_message}", Colors.RED))
                continue
            if result.diff:
                lines.append(result.diff.rstrip("\n"))
            for fix_result in result.results:
                if not fix_result.applied:
                    finding = fix_result.finding
                    lines.append(self._color(
                        f"  skipped {finding.file}:{finding.line}: {fix_result.error_message}",
                        Colors.YELLOW,
                    ))

        verb = "Would apply" if dry_run else "Applied"
        lines.append(self._color(f"{verb} {applied} fixes in {len(results)} files", Colors.BOLD))
        return "\n".join(lines)
