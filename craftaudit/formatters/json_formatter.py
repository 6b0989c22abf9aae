"""
JSON output formatter for machine-readable results.
"""

import json

from craftaudit.core.findings import ScanResult
from craftaudit.core.metadata import enrich


class JSONFormatter:
    """
    Formats scan results as JSON for machine consumption.

    Every finding carries its rule id, confidence, documentation URL and
    fingerprint alongside the raw finding fields.
    """

    def __init__(self, indent: int = 2):
        self.indent = indent

    def format_result(self, result: ScanResult) -> str:
        """Format a complete scan result as JSON."""
        data = result.to_dict()
        data["findings"] = [enrich(f) for f in result.findings]
        return json.dumps(data, indent=self.indent)
