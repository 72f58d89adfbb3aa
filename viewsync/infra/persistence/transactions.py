# =============================================================================
# File: viewsync/infra/persistence/transactions.py
# Description: Shared optimistic-transaction plumbing for document stores
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from viewsync.common.exceptions.exceptions import TransactionAbortedError, TransactionConflictError
from viewsync.config.reliability_config import ReliabilityConfigs, RetryConfig
from viewsync.infra.reliability.retry import retry_async
from viewsync.utils.document_paths import is_document_path

log = logging.getLogger("viewsync.infra.transactions")

T = TypeVar("T")


class WriteKind(str, Enum):
    CREATE = "create"
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class PendingWrite:
    kind: WriteKind
    path: str
    data: Optional[Dict[str, Any]] = None


@dataclass
class PendingWrites:
    """Write buffer of one transaction attempt, applied in order at commit."""
    writes: List[PendingWrite] = field(default_factory=list)

    def add(self, kind: WriteKind, path: str, data: Optional[Dict[str, Any]] = None) -> None:
        if not is_document_path(path):
            raise ValueError(f"Not a document path: {path!r}")
        self.writes.append(PendingWrite(kind=kind, path=path, data=dict(data) if data is not None else None))

    def __len__(self) -> int:
        return len(self.writes)

    def __iter__(self):
        return iter(self.writes)


class BufferedWritesMixin:
    """Buffered write methods shared by TransactionPort implementations."""

    _pending: PendingWrites

    def create(self, path: str, data: Dict[str, Any]) -> None:
        self._pending.add(WriteKind.CREATE, path, data)

    def set(self, path: str, data: Dict[str, Any]) -> None:
        self._pending.add(WriteKind.SET, path, data)

    def update(self, path: str, fields: Dict[str, Any]) -> None:
        self._pending.add(WriteKind.UPDATE, path, fields)

    def delete(self, path: str) -> None:
        self._pending.add(WriteKind.DELETE, path)


def _is_conflict(error: Exception) -> bool:
    return isinstance(error, TransactionConflictError)


async def run_optimistic_transaction(
        attempt: Callable[[], Awaitable[T]],
        *,
        context: str,
        retry_config: Optional[RetryConfig] = None,
) -> T:
    """
    Re-run `attempt` while it fails with TransactionConflictError.

    Each call of `attempt` must open a fresh transaction, run the body, and
    commit. Non-conflict errors propagate immediately; a conflict on the
    last attempt becomes TransactionAbortedError.
    """
    base = retry_config or ReliabilityConfigs.transaction_retry()
    config = base.model_copy(update={"retry_condition": _is_conflict})

    try:
        return await retry_async(attempt, retry_config=config, context=f"transaction {context}")
    except TransactionConflictError as e:
        log.warning(f"Transaction {context} gave up after {config.max_attempts} attempts: {e}")
        raise TransactionAbortedError(context, config.max_attempts) from e
