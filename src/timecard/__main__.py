#!/usr/bin/env python3
"""
Main entry point for the Timecard module.
This allows running the module with: python -m timecard
"""

from .core import main

if __name__ == "__main__":
    main()
