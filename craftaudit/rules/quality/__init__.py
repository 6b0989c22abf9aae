"""
Template quality detectors.
"""

from craftaudit.rules.quality import deprecated
from craftaudit.rules.quality import debug
from craftaudit.rules.quality import includes

__all__ = [
    "deprecated",
    "debug",
    "includes",
]
