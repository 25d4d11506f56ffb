"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested record or queue entry does not exist."""


class RemoteNotFoundError(NotFoundError):
    """Remote document targeted by an update or delete does not exist."""


class RemoteSyncError(DomainError):
    """A pull from the remote store failed with a non-recoverable error.

    The original exception is kept on ``__cause__`` and its classification on
    ``kind``.
    """

    def __init__(self, message: str, kind=None):
        super().__init__(message)
        self.kind = kind


def record_not_found(collection: str, record_id: str) -> str:
    """Return message for a record missing from the local cache."""
    return f"Record '{record_id}' not found in {collection}"


def remote_document_not_found(collection: str, document_id: str) -> str:
    """Return message for a document missing from the remote store."""
    return f"Document '{document_id}' not found in remote collection '{collection}'"


def unknown_collection(name: str) -> str:
    """Return message for an unsupported collection name."""
    return f"Unknown collection '{name}'. Supported: transactions, budgets, customers"


def reserved_field(name: str) -> str:
    """Return message for a field name that clashes with record metadata."""
    return f"Field name '{name}' is reserved for record metadata"


def invalid_offline_data(reason: str) -> str:
    """Return message for an import blob that cannot be read."""
    return f"Invalid offline data format: {reason}"


def queue_entry_not_found(entry_id: str) -> str:
    """Return message for a missing queue entry."""
    return f"Queue entry '{entry_id}' not found"
