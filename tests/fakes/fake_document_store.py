# =============================================================================
# File: tests/fakes/fake_document_store.py
# Description: In-memory DocumentStorePort with optimistic transactions
# Pattern: Ports & Adapters - Fake adapter
# =============================================================================

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set, TypeVar

from viewsync.common.exceptions.exceptions import DocumentNotFoundError, TransactionConflictError
from viewsync.config.reliability_config import RetryConfig
from viewsync.infra.persistence.transactions import (
    BufferedWritesMixin,
    PendingWrites,
    WriteKind,
    run_optimistic_transaction,
)
from viewsync.ports.document_store_port import DocumentSnapshot, TransactionPort
from viewsync.utils.document_paths import document_id, is_document_path, parent_collection

T = TypeVar("T")


@dataclass
class CallRecord:
    """Record of a method call for verification."""
    method: str
    args: tuple
    kwargs: Dict[str, Any]


class FakeTransaction(BufferedWritesMixin):
    """
    One transaction attempt against FakeDocumentStore.

    Every read records the version it saw (per document, and per collection
    for queries and counts). The commit fails with TransactionConflictError
    when any of them moved, which is what forces concurrent bodies to re-run.
    """

    def __init__(self, store: FakeDocumentStore):
        self._store = store
        self._pending = PendingWrites()
        self.read_documents: Dict[str, int] = {}
        self.read_collections: Dict[str, int] = {}

    async def get(self, path: str) -> DocumentSnapshot:
        await asyncio.sleep(0)
        self.read_documents.setdefault(path, self._store.version_of(path))
        return self._store.snapshot(path)

    async def query(
        self,
        collection: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[DocumentSnapshot]:
        await asyncio.sleep(0)
        self.read_collections.setdefault(collection, self._store.collection_version_of(collection))
        return self._store.select(collection, where, order_by, descending, limit, None)

    async def count(self, collection: str, *, where: Optional[Mapping[str, Any]] = None) -> int:
        await asyncio.sleep(0)
        self.read_collections.setdefault(collection, self._store.collection_version_of(collection))
        return len(self._store.select(collection, where, None, False, None, None))


class FakeDocumentStore:
    """
    Fake implementation of DocumentStorePort for unit testing.

    Documents live in a dict keyed by path. Reads yield to the event loop
    so that gathered transactions really interleave.

    Usage:
        store = FakeDocumentStore()
        store.seed("users/alice", {"name": "Alice"})

        projector = ChatProjector(store, dispatcher, config)
        await projector.on_message_created(message)

        assert store.data("user_chatrooms/bob/chatrooms/alice_bob")["unread_count"] == 1
        assert store.conflicts == 0
    """

    def __init__(self, retry_config: Optional[RetryConfig] = None):
        self.documents: Dict[str, Dict[str, Any]] = {}
        self._versions: Dict[str, int] = {}
        self._collection_versions: Dict[str, int] = {}
        self._clock = 0
        self._lock = asyncio.Lock()

        self.retry_config = retry_config or RetryConfig(
            max_attempts=10,
            initial_delay_ms=1,
            max_delay_ms=5,
            jitter=False,
        )

        # Call tracking
        self._calls: List[CallRecord] = []
        self.commits = 0
        self.conflicts = 0

        # Configurable failures
        self._should_fail: Dict[str, str] = {}  # method -> error message
        self._failing_collections: Set[str] = set()  # delete_batch fails for these
        self._forced_conflicts = 0

    # =========================================================================
    # Test Setup Methods
    # =========================================================================

    def seed(self, path: str, data: Dict[str, Any]) -> None:
        """Write a document directly, without recording a call."""
        self._write(path, copy.deepcopy(data))

    def configure_failure(self, method: str, error_message: str) -> None:
        """Configure a method to fail with an error."""
        self._should_fail[method] = error_message

    def fail_delete_batch_for(self, collection: str) -> None:
        """delete_batch raises for documents of `collection`."""
        self._failing_collections.add(collection)

    def fail_next_commits(self, count: int) -> None:
        """The next `count` transaction commits conflict regardless of reads."""
        self._forced_conflicts = count

    def clear_failures(self) -> None:
        """Drop all configured failures."""
        self._should_fail.clear()
        self._failing_collections.clear()
        self._forced_conflicts = 0

    # =========================================================================
    # Test Verification Methods
    # =========================================================================

    def exists(self, path: str) -> bool:
        return path in self.documents

    def data(self, path: str) -> Optional[Dict[str, Any]]:
        doc = self.documents.get(path)
        return copy.deepcopy(doc) if doc is not None else None

    def paths_in(self, collection: str) -> List[str]:
        return sorted(path for path in self.documents if parent_collection(path) == collection)

    def was_called(self, method: str) -> bool:
        return any(c.method == method for c in self._calls)

    def get_call_count(self, method: str) -> int:
        return sum(1 for c in self._calls if c.method == method)

    def get_calls(self, method: str) -> List[CallRecord]:
        return [c for c in self._calls if c.method == method]

    # =========================================================================
    # Internal Helpers (also used by FakeTransaction)
    # =========================================================================

    def version_of(self, path: str) -> int:
        return self._versions.get(path, 0)

    def collection_version_of(self, collection: str) -> int:
        return self._collection_versions.get(collection, 0)

    def snapshot(self, path: str) -> DocumentSnapshot:
        return DocumentSnapshot(path=path, data=self.data(path))

    def select(
        self,
        collection: str,
        where: Optional[Mapping[str, Any]],
        order_by: Optional[str],
        descending: bool,
        limit: Optional[int],
        start_after: Optional[str],
    ) -> List[DocumentSnapshot]:
        matches = [
            path for path, doc in self.documents.items()
            if parent_collection(path) == collection
            and all(doc.get(field) == value for field, value in (where or {}).items())
        ]
        if start_after is not None:
            if order_by is not None:
                raise ValueError("start_after requires document-id ordering")
            matches = [
                path for path in matches
                if (document_id(path) < start_after if descending else document_id(path) > start_after)
            ]

        if order_by is None:
            matches.sort(key=document_id, reverse=descending)
        else:
            matches.sort(key=lambda path: (self.documents[path].get(order_by), document_id(path)), reverse=descending)

        if limit is not None:
            matches = matches[:limit]
        return [self.snapshot(path) for path in matches]

    def _write(self, path: str, data: Optional[Dict[str, Any]]) -> None:
        self._clock += 1
        if data is None:
            self.documents.pop(path, None)
        else:
            self.documents[path] = data
        self._versions[path] = self._clock
        self._collection_versions[parent_collection(path)] = self._clock

    def _record_call(self, method: str, *args, **kwargs) -> None:
        self._calls.append(CallRecord(method=method, args=args, kwargs=kwargs))

    def _check_failure(self, method: str) -> None:
        if method in self._should_fail:
            raise Exception(self._should_fail[method])

    async def _commit(self, tx: FakeTransaction) -> None:
        async with self._lock:
            if self._forced_conflicts > 0:
                self._forced_conflicts -= 1
                self.conflicts += 1
                raise TransactionConflictError("forced conflict")

            stale = [path for path, seen in tx.read_documents.items() if self.version_of(path) != seen]
            stale += [c for c, seen in tx.read_collections.items() if self.collection_version_of(c) != seen]
            if stale:
                self.conflicts += 1
                raise TransactionConflictError(f"read set changed: {stale}")

            for write in tx._pending:
                if write.kind is WriteKind.CREATE and self.exists(write.path):
                    self.conflicts += 1
                    raise TransactionConflictError(f"document appeared: {write.path}")
                if write.kind is WriteKind.UPDATE and not self.exists(write.path):
                    raise DocumentNotFoundError(write.path)

            for write in tx._pending:
                if write.kind in (WriteKind.CREATE, WriteKind.SET):
                    self._write(write.path, copy.deepcopy(write.data))
                elif write.kind is WriteKind.UPDATE:
                    self._write(write.path, {**self.documents[write.path], **copy.deepcopy(write.data)})
                elif write.kind is WriteKind.DELETE:
                    self._write(write.path, None)
            self.commits += 1

    # =========================================================================
    # DocumentStorePort Implementation
    # =========================================================================

    async def get(self, path: str) -> DocumentSnapshot:
        self._record_call("get", path)
        self._check_failure("get")
        if not is_document_path(path):
            raise ValueError(f"Not a document path: {path!r}")
        await asyncio.sleep(0)
        return self.snapshot(path)

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
        self._record_call("query", collection, where=where, limit=limit, start_after=start_after)
        self._check_failure("query")
        await asyncio.sleep(0)
        return self.select(collection, where, order_by, descending, limit, start_after)

    async def count(self, collection: str, *, where: Optional[Mapping[str, Any]] = None) -> int:
        self._record_call("count", collection, where=where)
        self._check_failure("count")
        await asyncio.sleep(0)
        return len(self.select(collection, where, None, False, None, None))

    async def set(self, path: str, data: Dict[str, Any]) -> None:
        self._record_call("set", path, data)
        self._check_failure("set")
        async with self._lock:
            self._write(path, copy.deepcopy(data))

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        self._record_call("update", path, fields)
        self._check_failure("update")
        async with self._lock:
            if not self.exists(path):
                raise DocumentNotFoundError(path)
            self._write(path, {**self.documents[path], **copy.deepcopy(fields)})

    async def delete_batch(self, paths: List[str]) -> int:
        self._record_call("delete_batch", list(paths))
        self._check_failure("delete_batch")
        if any(parent_collection(path) in self._failing_collections for path in paths):
            raise Exception(f"delete_batch failed for {paths[0]}")
        async with self._lock:
            deleted = 0
            for path in paths:
                if self.exists(path):
                    self._write(path, None)
                    deleted += 1
            return deleted

    async def run_transaction(
        self,
        body: Callable[[TransactionPort], Awaitable[T]],
        *,
        context: str = "transaction",
    ) -> T:
        async def attempt() -> T:
            self._record_call("run_transaction", context=context)
            self._check_failure("run_transaction")
            tx = FakeTransaction(self)
            result = await body(tx)
            await asyncio.sleep(0)
            await self._commit(tx)
            return result

        return await run_optimistic_transaction(attempt, context=context, retry_config=self.retry_config)
