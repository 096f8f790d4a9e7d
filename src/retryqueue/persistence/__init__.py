"""Pluggable record stores behind the IRecordStore Protocol."""

from __future__ import annotations

from retryqueue.core.config import AppSettings
from retryqueue.core.protocols import IRecordStore
from retryqueue.persistence.dynamodb_backend import DynamoDBRecordStore
from retryqueue.persistence.memory_backend import MemoryRecordStore


def create_store(settings: AppSettings | None = None) -> IRecordStore:
    """Create the record store selected by ``settings.store_backend``."""
    if settings is None:
        settings = AppSettings()

    if settings.store_backend == "memory":
        return MemoryRecordStore()

    return DynamoDBRecordStore(
        collection_name=settings.queue.collection_name,
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )


__all__ = ["DynamoDBRecordStore", "MemoryRecordStore", "create_store"]
