"""In-memory record store: dict-backed, for unit tests and local runs."""

from __future__ import annotations

import copy
import uuid
from collections import Counter
from typing import Any, Iterable

from retryqueue.core.filters import Filter, matches
from retryqueue.core.types import Document


class MemoryRecordStore:
    """Dict-backed IRecordStore.

    Documents are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._docs: dict[str, Document] = {}
        self.indexes: set[str] = set()

    def __len__(self) -> int:
        return len(self._docs)

    def insert(self, document: Document) -> Document:
        doc = copy.deepcopy(document)
        doc["id"] = uuid.uuid4().hex
        self._docs[doc["id"]] = doc
        return copy.deepcopy(doc)

    def get(self, record_id: str) -> Document | None:
        doc = self._docs.get(record_id)
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, flt: Filter, sort_field: str, limit: int) -> list[Document]:
        # Stable sort keeps insertion order for equal keys; missing keys sort first.
        hits = [d for d in self._docs.values() if matches(flt, d)]
        hits.sort(key=lambda d: (sort_field in d, d.get(sort_field)))
        return [copy.deepcopy(d) for d in hits[:limit]]

    def update_one(
        self,
        record_id: str,
        set_fields: Document,
        unset_fields: Iterable[str] = (),
        inc_fields: dict[str, int] | None = None,
    ) -> bool:
        doc = self._docs.get(record_id)
        if doc is None:
            return False
        doc.update(copy.deepcopy(set_fields))
        for name in unset_fields:
            doc.pop(name, None)
        for name, amount in (inc_fields or {}).items():
            doc[name] = doc.get(name, 0) + amount
        return True

    def update_many(
        self, record_ids: Iterable[str], set_fields: Document, unset_fields: Iterable[str] = ()
    ) -> int:
        unset = tuple(unset_fields)
        return sum(1 for rid in set(record_ids) if self.update_one(rid, set_fields, unset))

    def delete_many(self, flt: Filter) -> int:
        doomed = [rid for rid, d in self._docs.items() if matches(flt, d)]
        for rid in doomed:
            del self._docs[rid]
        return len(doomed)

    def aggregate_count_by_field(self, field: str) -> list[tuple[Any, int]]:
        counts = Counter(d.get(field) for d in self._docs.values())
        return list(counts.items())

    def ensure_index(self, field: str) -> None:
        self.indexes.add(field)
