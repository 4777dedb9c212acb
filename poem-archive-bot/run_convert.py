#!/usr/bin/env python3
"""
Main entry point for the .txt -> .md archive migration.
"""

import os
import sys

# Ensure package imports work when running this file directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from workers.convert_worker import main as _convert_main


def main() -> None:
    sys.exit(_convert_main())


if __name__ == "__main__":
    main()
