"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

SEVEN_DAYS_MS = 7 * 24 * 60 * 60 * 1000


class QueueConfig(BaseSettings):
    """Batch processing and retry policy for one queue collection."""

    model_config = {"env_prefix": "RETRYQUEUE_QUEUE_"}

    collection_name: str = "retry_queue"
    batch_size: int = Field(default=10, gt=0)
    max_record_age_ms: int = Field(default=SEVEN_DAYS_MS, ge=0)
    retry_limit: int = 5  # negative retries forever
    backoff_ms: float = Field(default=1000, ge=0)
    backoff_coefficient: float = Field(default=1.5, gt=0)
    continue_processing_on_error: bool = False


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "RETRYQUEUE_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "RETRYQUEUE_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_json: bool = False
    store_backend: Literal["memory", "dynamodb"] = "dynamodb"

    queue: QueueConfig = QueueConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
