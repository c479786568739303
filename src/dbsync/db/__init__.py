"""Database access layer: SQLAlchemy-backed handles for one sync run."""

from .handle import DatabaseHandle, RecordStore, open_handles

__all__ = ["DatabaseHandle", "RecordStore", "open_handles"]
