"""
Persistence boundary - confirmed sessions out to inventory storage.
"""

from .inventory import build_inventory_row
from .json_writer import SessionJsonWriter, read_sessions

__all__ = [
    "SessionJsonWriter",
    "build_inventory_row",
    "read_sessions",
]
