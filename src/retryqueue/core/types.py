"""Type aliases used across the RetryQueue package."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

Document = dict[str, Any]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
