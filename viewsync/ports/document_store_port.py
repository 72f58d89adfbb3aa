# =============================================================================
# File: viewsync/ports/document_store_port.py
# Description: Port interface for the document store
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, TypeVar, runtime_checkable

from viewsync.utils.document_paths import document_id

T = TypeVar("T")


@dataclass(frozen=True)
class DocumentSnapshot:
    """Point-in-time copy of one document. data is None when it does not exist."""
    path: str
    data: Optional[Dict[str, Any]]

    @property
    def id(self) -> str:
        return document_id(self.path)

    @property
    def exists(self) -> bool:
        return self.data is not None


@runtime_checkable
class TransactionPort(Protocol):
    """
    Port: one attempt of an optimistic transaction

    Reads observe a single snapshot and join the conflict-detection read set.
    Writes are buffered and applied atomically at commit, after the
    transaction body returns. A conflicting commit raises
    TransactionConflictError and the store re-runs the whole body.
    """

    async def get(self, path: str) -> DocumentSnapshot:
        ...

    async def query(
        self,
        collection: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[DocumentSnapshot]:
        ...

    async def count(self, collection: str, *, where: Optional[Mapping[str, Any]] = None) -> int:
        ...

    def create(self, path: str, data: Dict[str, Any]) -> None:
        """Create; the commit fails with a conflict if the document appeared meanwhile."""
        ...

    def set(self, path: str, data: Dict[str, Any]) -> None:
        """Create or fully replace."""
        ...

    def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Shallow-merge top-level fields into an existing document."""
        ...

    def delete(self, path: str) -> None:
        ...


@runtime_checkable
class DocumentStorePort(Protocol):
    """
    Port: Document Store

    Defined by: projections (chat, rating, user_account)
    Implemented by: PostgresDocumentStore (viewsync/infra/persistence/pg_document_store.py)

    Queries support equality filters only. Results are ordered by `order_by`
    (a top-level field) with the document id as tie-breaker, or by document
    id alone when `order_by` is None. `start_after` is a document id and is
    only valid with document-id ordering.
    """

    async def get(self, path: str) -> DocumentSnapshot:
        ...

    async def query(
        self,
        collection: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        start_after: Optional[str] = None,
    ) -> List[DocumentSnapshot]:
        ...

    async def count(self, collection: str, *, where: Optional[Mapping[str, Any]] = None) -> int:
        ...

    async def set(self, path: str, data: Dict[str, Any]) -> None:
        ...

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Raises DocumentNotFoundError when the document does not exist."""
        ...

    async def delete_batch(self, paths: List[str]) -> int:
        """Delete all paths atomically; returns the number actually deleted."""
        ...

    async def run_transaction(
        self,
        body: Callable[[TransactionPort], Awaitable[T]],
        *,
        context: str = "transaction",
    ) -> T:
        """
        Run `body` in an optimistic transaction, re-running it on conflict.

        Raises TransactionAbortedError once the retry budget is spent; any
        other error from the body propagates unchanged and nothing is written.
        """
        ...
