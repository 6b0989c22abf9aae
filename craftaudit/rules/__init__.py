"""
Template detectors.

This package contains one detector per template pattern, grouped into
performance, security and quality checks.
"""

# Import all detectors to register them
from craftaudit.rules.performance import queries, eager_loading
from craftaudit.rules.security import xss, ssti, csrf
from craftaudit.rules.quality import deprecated, debug, includes

__all__ = [
    "queries",
    "eager_loading",
    "xss",
    "ssti",
    "csrf",
    "deprecated",
    "debug",
    "includes",
]
