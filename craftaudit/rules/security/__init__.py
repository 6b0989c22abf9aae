"""
Security detectors.
"""

from craftaudit.rules.security import xss
from craftaudit.rules.security import ssti
from craftaudit.rules.security import csrf

__all__ = [
    "xss",
    "ssti",
    "csrf",
]
