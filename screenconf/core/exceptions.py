"""
Custom exceptions for the screen configuration engine.
"""


class ScreenConfigException(Exception):
    """Base exception for all screen configuration errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RowNotFoundError(ScreenConfigException):
    """Requested row does not exist in the store."""

    def __init__(self, table: str, row_id: str):
        super().__init__(
            f"{table} row not found: {row_id}",
            details={"table": table, "id": row_id},
        )
        self.table = table
        self.row_id = row_id


class StoreFailureError(ScreenConfigException):
    """Network, permission or query error from the data store."""
    pass


class ConfigValidationError(ScreenConfigException):
    """Malformed import document or invalid update path."""
    pass


class EventAssociationError(ScreenConfigException):
    """Failure linking a screen to the active event."""
    pass
