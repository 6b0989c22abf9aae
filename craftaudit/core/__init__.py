"""Core scanning engine and data structures."""

from craftaudit.core.findings import Finding, Fix, Pattern, Severity, ScanResult
from craftaudit.core.rules import Detector, DetectorRegistry
from craftaudit.core.scanner import TemplateScanner
from craftaudit.core.engine import ScanEngine

__all__ = [
    "Finding",
    "Fix",
    "Pattern",
    "Severity",
    "ScanResult",
    "Detector",
    "DetectorRegistry",
    "TemplateScanner",
    "ScanEngine",
]
