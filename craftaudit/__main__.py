"""
Entry point for running craft-audit as a module.

Usage:
    python -m craftaudit scan ./templates
    python -m craftaudit --help
"""

import sys
from craftaudit.cli import main

if __name__ == "__main__":
    sys.exit(main())
