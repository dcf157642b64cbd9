"""Course Shelf: scan course directories into a SQLite catalog."""

__version__ = "0.1.0"
