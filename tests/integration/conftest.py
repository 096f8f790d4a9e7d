"""Integration test fixtures against LocalStack DynamoDB."""

from __future__ import annotations

import os
import sys
import uuid

import boto3
import pytest

# Default LocalStack endpoint
LOCALSTACK_URL = os.environ.get("LOCALSTACK_URL", "http://localhost:4566")
TABLE_SUFFIX = "-inttest"


def _localstack_available() -> bool:
    """Check if LocalStack is reachable."""
    try:
        client = boto3.client("dynamodb", region_name="us-east-1", endpoint_url=LOCALSTACK_URL)
        client.list_tables()
        return True
    except Exception:
        return False


skip_no_localstack = pytest.mark.skipif(
    not _localstack_available(),
    reason="LocalStack not available",
)


@pytest.fixture(scope="session")
def localstack_ddb():
    """DynamoDB resource pointing at LocalStack."""
    return boto3.resource("dynamodb", region_name="us-east-1", endpoint_url=LOCALSTACK_URL)


@pytest.fixture
def queue_collection(localstack_ddb):
    """Create a throwaway queue table via the provisioning script."""
    sys.path.insert(0, str(os.path.join(os.path.dirname(__file__), "..", "..", "scripts")))
    from create_queue_table import create_queue_table

    collection = f"retry_queue_{uuid.uuid4().hex[:8]}"
    create_queue_table(localstack_ddb, collection, suffix=TABLE_SUFFIX)
    yield collection
    localstack_ddb.Table(f"{collection}{TABLE_SUFFIX}").delete()
