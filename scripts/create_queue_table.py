"""Create the DynamoDB table backing a retry queue collection.

Usage:
    python scripts/create_queue_table.py --collection retry_queue --endpoint-url http://localhost:4566
"""

from __future__ import annotations

import argparse
from typing import Any

import boto3

STATUS_INDEX = "status-index"


def create_queue_table(ddb: Any, collection: str, suffix: str = "") -> bool:
    """Create the queue table with its status GSI. Returns False if it already exists."""
    client = ddb.meta.client
    table_name = f"{collection}{suffix}"
    existing = client.list_tables().get("TableNames", [])

    if table_name in existing:
        print(f"  Table {table_name} already exists, skipping")
        return False

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "status", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": STATUS_INDEX,
                "KeySchema": [{"AttributeName": "status", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "KEYS_ONLY"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    print(f"  Created table {table_name}")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the retry queue DynamoDB table")
    parser.add_argument("--collection", default="retry_queue", help="Queue collection name")
    parser.add_argument("--suffix", default="", help="Table suffix (e.g., -dev)")
    parser.add_argument("--endpoint-url", default=None, help="DynamoDB endpoint (e.g., LocalStack)")
    parser.add_argument("--region", default="us-east-1")
    args = parser.parse_args()

    kwargs: dict[str, Any] = {"region_name": args.region}
    if args.endpoint_url:
        kwargs["endpoint_url"] = args.endpoint_url
    ddb = boto3.resource("dynamodb", **kwargs)

    print(f"Creating queue table (collection={args.collection!r}, suffix={args.suffix!r})...")
    create_queue_table(ddb, args.collection, suffix=args.suffix)
    print("Done.")


if __name__ == "__main__":
    main()
