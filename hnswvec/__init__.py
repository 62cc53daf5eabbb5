"""Vector values, SQLite shadow-table storage and scalar SQL vector functions."""

__version__ = "0.1.0"