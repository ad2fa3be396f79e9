"""
Storage Errors

Typed failures raised by the storage layer. Callers branch on the type to
tell a malformed key (a bug) from a missing resource (e.g. a cold cache).
"""


class StorageError(Exception):
    """Base class for all storage failures."""
    pass


class InvalidPathError(StorageError, ValueError):
    """Raised when a URI or tenant would escape the tenant storage root."""
    pass


class NotFoundError(StorageError, FileNotFoundError):
    """Raised when a required file or directory does not exist."""
    pass


class UnknownStorageTypeError(StorageError, ValueError):
    """Raised when no storage backend is registered for a type."""
    pass
