"""Record store errors."""


class RecordStoreError(Exception):
    """Base exception for record store operations."""


class MissingRecordError(RecordStoreError):
    """Raised when no record exists for an identifier."""
