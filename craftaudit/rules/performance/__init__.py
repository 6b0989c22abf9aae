"""
Element query performance detectors.
"""

from craftaudit.rules.performance import queries
from craftaudit.rules.performance import eager_loading

__all__ = [
    "queries",
    "eager_loading",
]
