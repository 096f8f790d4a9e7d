"""Protocol interfaces for RetryQueue abstractions.

The engine talks to storage only through these Protocols: structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol, runtime_checkable

from retryqueue.core.filters import Filter
from retryqueue.core.types import Document


# ---------------------------------------------------------------------------
# Persistence: Record Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IRecordStore(Protocol):
    """A single logical collection of queue record documents.

    Every mutation targets exact record ids; the store's per-document atomic
    update is the only concurrency primitive the engine relies on.
    """

    def insert(self, document: Document) -> Document: ...

    def get(self, record_id: str) -> Document | None: ...

    def find(self, flt: Filter, sort_field: str, limit: int) -> list[Document]: ...

    def update_one(
        self,
        record_id: str,
        set_fields: Document,
        unset_fields: Iterable[str] = (),
        inc_fields: dict[str, int] | None = None,
    ) -> bool: ...

    def update_many(
        self, record_ids: Iterable[str], set_fields: Document, unset_fields: Iterable[str] = ()
    ) -> int: ...

    def delete_many(self, flt: Filter) -> int: ...

    def aggregate_count_by_field(self, field: str) -> list[tuple[Any, int]]: ...

    def ensure_index(self, field: str) -> None: ...
