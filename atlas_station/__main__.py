"""
Entry point for Atlas Station.

Usage: python -m atlas_station
"""

import sys

from .main import main

if __name__ == "__main__":
    sys.exit(main())
