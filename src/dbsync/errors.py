"""Exception hierarchy for database access during a sync run.

Configuration problems are reported as plain ``ValueError`` (see
``dbsync.config``); everything raised while talking to a database
derives from ``DatabaseError``.
"""


class DatabaseError(Exception):
    """Base class for database failures surfaced by ``DatabaseHandle``."""


class ConnectionFailedError(DatabaseError):
    """A database connection could not be established."""


class ConnectionLostError(DatabaseError):
    """An established connection was invalidated mid-run.

    Unlike read or write failures on a single model or record, this is
    fatal for the whole run.
    """


class SnapshotLoadError(DatabaseError):
    """Reading every record of one model failed."""

    def __init__(self, model: str, label: str, cause: Exception) -> None:
        self.model = model
        self.label = label
        self.cause = cause
        super().__init__(f"Failed to read {model} from {label}: {cause}")
