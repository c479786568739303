"""Cross-database record synchronisation between two PostgreSQL instances."""

__version__ = "1.0.0"
