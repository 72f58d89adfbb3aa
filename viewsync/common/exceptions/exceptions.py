# viewsync/common/exceptions/exceptions.py
# =============================================================================
# Custom exceptions for viewsync
# =============================================================================


class ViewSyncException(Exception):
    """Base exception for viewsync"""
    pass


class DocumentNotFoundError(ViewSyncException):
    """Raised when an update targets a document that does not exist"""

    def __init__(self, path: str):
        super().__init__(f"Document not found: {path}")
        self.path = path


class TransactionConflictError(ViewSyncException):
    """
    Raised when a transaction read set was modified before commit.

    Retryable: the store re-runs the whole transaction body.
    """
    pass


class TransactionAbortedError(ViewSyncException):
    """Raised when a transaction keeps conflicting after all attempts"""

    def __init__(self, context: str, attempts: int):
        super().__init__(f"Transaction '{context}' aborted after {attempts} attempts")
        self.context = context
        self.attempts = attempts


class NotificationError(ViewSyncException):
    """Raised when a push notification could not be delivered to the provider"""
    pass


class StorageError(ViewSyncException):
    """Raised when the blob storage backend fails an operation"""
    pass


class CascadeBatchError(ViewSyncException):
    """Raised when a cascade deletion batch fails"""

    def __init__(self, collection: str, deleted_so_far: int, cause: Exception):
        super().__init__(
            f"Batch delete failed for {collection} after {deleted_so_far} documents: {cause}"
        )
        self.collection = collection
        self.deleted_so_far = deleted_so_far


class InfrastructureError(ViewSyncException):
    """Raised when a backing service (database pool) is unavailable"""
    pass
