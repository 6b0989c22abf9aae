"""
craft-audit

Static analysis for Craft CMS Twig templates: N+1 queries, unbounded
element queries, deprecated APIs, XSS and SSTI risks, leftover debug
output and forms without CSRF tokens.
"""

__version__ = "1.0.0"

from craftaudit.core.engine import ScanEngine
from craftaudit.core.scanner import TemplateScanner, scan_template
from craftaudit.core.findings import Finding, Fix, Pattern, Severity
from craftaudit.config import ScanConfig

__all__ = [
    "ScanEngine",
    "TemplateScanner",
    "scan_template",
    "Finding",
    "Fix",
    "Pattern",
    "Severity",
    "ScanConfig",
]
