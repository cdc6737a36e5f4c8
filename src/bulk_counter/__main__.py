"""
Entry point for running the counter as a module.

Usage:
    python -m bulk_counter [hours]
"""

from .cli import main

if __name__ == "__main__":
    main()
