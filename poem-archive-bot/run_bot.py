#!/usr/bin/env python3
"""
Main entry point for the poem archive bot.

Select the identity with BOT_TYPE=primary|secondary.
"""

import os
import sys

# Ensure package imports work when running this file directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from workers.bot_worker import main as _bot_main


def main() -> None:
    sys.exit(_bot_main())


if __name__ == "__main__":
    main()
