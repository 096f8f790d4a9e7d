"""DynamoDB backend implementing IRecordStore."""

from __future__ import annotations

import functools
import operator
import uuid
from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable

import boto3
from boto3.dynamodb.conditions import Attr, ConditionBase
from botocore.exceptions import ClientError

from retryqueue.core.exceptions import StoreError
from retryqueue.core.filters import And, Eq, Filter, In, Lte, Or
from retryqueue.core.types import Document

DATE_FIELDS = frozenset({"receivedDate", "available", "processedDate", "resetDate"})


def _encode_datetime(value: datetime) -> str:
    # Fixed-width UTC ISO-8601 so DynamoDB string comparison orders timestamps.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _to_dynamodb(obj: Any) -> Any:
    """Convert Python values to types boto3 can serialize."""
    if isinstance(obj, datetime):
        return _encode_datetime(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _to_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_dynamodb(i) for i in obj]
    return obj


def _from_dynamodb(obj: Any) -> Any:
    """Convert Decimal values in a DynamoDB item to int/float."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: _from_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_from_dynamodb(i) for i in obj]
    return obj


def _decode_item(item: dict[str, Any]) -> Document:
    doc = _from_dynamodb(item)
    for name in doc.keys() & DATE_FIELDS:
        if isinstance(doc[name], str):
            doc[name] = datetime.fromisoformat(doc[name])
    return doc


def _to_condition(flt: Filter) -> ConditionBase:
    if isinstance(flt, Eq):
        return Attr(flt.field).eq(_to_dynamodb(flt.value))
    if isinstance(flt, In):
        return Attr(flt.field).is_in([_to_dynamodb(v) for v in flt.values])
    if isinstance(flt, Lte):
        return Attr(flt.field).lte(_to_dynamodb(flt.value))
    if isinstance(flt, And):
        return functools.reduce(operator.and_, (_to_condition(c) for c in flt.clauses))
    if isinstance(flt, Or):
        return functools.reduce(operator.or_, (_to_condition(c) for c in flt.clauses))
    raise TypeError(f"Unsupported filter node: {flt!r}")


class DynamoDBRecordStore:
    """Production IRecordStore backed by one DynamoDB table per collection.

    The table has a single hash key ``id``. Queries are strongly consistent
    filtered Scans with sort and limit applied client-side, which suits a
    queue table that cleanup keeps small. The ``status-index`` GSI is never
    read here: GSI reads are eventually consistent and could hand back a
    record the previous tick already moved on.
    """

    def __init__(self, collection_name: str, table_suffix: str = "",
                 region: str = "us-east-1", endpoint_url: str | None = None) -> None:
        self._table_name = f"{collection_name}{table_suffix}"
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)
        self._table = self._ddb.Table(self._table_name)

    @property
    def table_name(self) -> str:
        return self._table_name

    def _scan(self, **kwargs: Any) -> list[dict[str, Any]]:
        """Scan the whole table following pagination."""
        try:
            resp = self._table.scan(**kwargs)
            items = list(resp.get("Items", []))
            while "LastEvaluatedKey" in resp:
                resp = self._table.scan(ExclusiveStartKey=resp["LastEvaluatedKey"], **kwargs)
                items.extend(resp.get("Items", []))
            return items
        except ClientError as exc:
            raise StoreError(f"DynamoDB scan failed on {self._table_name!r}: {exc}") from exc

    # ---- IRecordStore methods ----

    def insert(self, document: Document) -> Document:
        doc = {**document, "id": uuid.uuid4().hex}
        try:
            self._table.put_item(Item=_to_dynamodb(doc))
        except ClientError as exc:
            raise StoreError(f"DynamoDB put failed on {self._table_name!r}: {exc}") from exc
        return doc

    def get(self, record_id: str) -> Document | None:
        try:
            resp = self._table.get_item(Key={"id": record_id}, ConsistentRead=True)
        except ClientError as exc:
            raise StoreError(f"DynamoDB get failed for id={record_id!r}: {exc}") from exc
        item = resp.get("Item")
        return _decode_item(item) if item else None

    def find(self, flt: Filter, sort_field: str, limit: int) -> list[Document]:
        docs = [_decode_item(i) for i in self._scan(FilterExpression=_to_condition(flt), ConsistentRead=True)]
        docs.sort(key=lambda d: (sort_field in d, d.get(sort_field), d["id"]))
        return docs[:limit]

    def update_one(
        self,
        record_id: str,
        set_fields: Document,
        unset_fields: Iterable[str] = (),
        inc_fields: dict[str, int] | None = None,
    ) -> bool:
        names: dict[str, str] = {"#pk": "id"}
        values: dict[str, Any] = {}
        clauses: list[str] = []

        sets = []
        for i, (name, value) in enumerate(set_fields.items()):
            names[f"#s{i}"] = name
            values[f":s{i}"] = _to_dynamodb(value)
            sets.append(f"#s{i} = :s{i}")
        if sets:
            clauses.append("SET " + ", ".join(sets))

        removes = []
        for i, name in enumerate(unset_fields):
            names[f"#r{i}"] = name
            removes.append(f"#r{i}")
        if removes:
            clauses.append("REMOVE " + ", ".join(removes))

        adds = []
        for i, (name, amount) in enumerate((inc_fields or {}).items()):
            names[f"#a{i}"] = name
            values[f":a{i}"] = amount
            adds.append(f"#a{i} :a{i}")
        if adds:
            clauses.append("ADD " + ", ".join(adds))

        if not clauses:
            return self.get(record_id) is not None

        kwargs: dict[str, Any] = {
            "Key": {"id": record_id},
            "UpdateExpression": " ".join(clauses),
            "ConditionExpression": "attribute_exists(#pk)",
            "ExpressionAttributeNames": names,
        }
        if values:
            kwargs["ExpressionAttributeValues"] = values

        try:
            self._table.update_item(**kwargs)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return False
            raise StoreError(f"DynamoDB update failed for id={record_id!r}: {exc}") from exc
        return True

    def update_many(
        self, record_ids: Iterable[str], set_fields: Document, unset_fields: Iterable[str] = ()
    ) -> int:
        unset = tuple(unset_fields)
        return sum(1 for rid in set(record_ids) if self.update_one(rid, set_fields, unset))

    def delete_many(self, flt: Filter) -> int:
        """Delete every record matching ``flt``.

        Each delete re-checks the filter, so a record changed between the scan
        and its delete (e.g. reset back to ``received``) is left alone.
        """
        condition = _to_condition(flt)
        items = self._scan(
            FilterExpression=condition,
            ProjectionExpression="#pk",
            ExpressionAttributeNames={"#pk": "id"},
        )
        deleted = 0
        for item in items:
            try:
                self._table.delete_item(Key={"id": item["id"]}, ConditionExpression=condition)
            except ClientError as exc:
                if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                    continue
                raise StoreError(f"DynamoDB delete failed for id={item['id']!r}: {exc}") from exc
            deleted += 1
        return deleted

    def aggregate_count_by_field(self, field: str) -> list[tuple[Any, int]]:
        items = self._scan(ProjectionExpression="#f", ExpressionAttributeNames={"#f": field})
        counts = Counter(_from_dynamodb(item.get(field)) for item in items)
        return list(counts.items())

    def ensure_index(self, field: str) -> None:
        """Add a ``{field}-index`` GSI if the table does not have one yet.

        The index serves ad-hoc operator queries only; see the class docstring.
        """
        client = self._ddb.meta.client
        index_name = f"{field}-index"
        try:
            table = client.describe_table(TableName=self._table_name)["Table"]
            existing = {i["IndexName"] for i in table.get("GlobalSecondaryIndexes", [])}
            if index_name in existing:
                return
            client.update_table(
                TableName=self._table_name,
                AttributeDefinitions=[{"AttributeName": field, "AttributeType": "S"}],
                GlobalSecondaryIndexUpdates=[{
                    "Create": {
                        "IndexName": index_name,
                        "KeySchema": [{"AttributeName": field, "KeyType": "HASH"}],
                        "Projection": {"ProjectionType": "KEYS_ONLY"},
                    }
                }],
            )
        except ClientError as exc:
            raise StoreError(f"DynamoDB ensure_index({field!r}) failed: {exc}") from exc
