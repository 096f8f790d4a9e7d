"""Handler outcomes.

A handler either returns normally (``Success``), returns or raises a skip or
fail signal, or raises anything else (``Transient``). ``run_handler`` folds all
of these into one of four values so the processor can dispatch on type.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Mapping, Union

from retryqueue.core.exceptions import FailRecord, SkipRecord


@dataclass(frozen=True)
class Success:
    info: Any = None

    @property
    def additional_info(self) -> Any:
        """Non-empty mapping, list or string returned by the handler; else None."""
        info = self.info
        if isinstance(info, Mapping):
            info = dict(info)
        elif isinstance(info, tuple):
            info = list(info)
        elif not isinstance(info, (list, str)):
            return None
        return info or None


@dataclass(frozen=True)
class Skip:
    delay_ms: int = 0


@dataclass(frozen=True)
class Fail:
    reason: Any = None


@dataclass(frozen=True)
class Transient:
    error: BaseException


HandlerOutcome = Union[Success, Skip, Fail, Transient]


class RecordResult(StrEnum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    RETRY_SCHEDULED = "retry_scheduled"
    NOTIFIED = "notified"
    NOTIFY_FAILED = "notify_failed"


def run_handler(handler: Callable[[Any], Any], record: Any) -> HandlerOutcome:
    """Invoke ``handler(record)`` and classify what happened."""
    try:
        result = handler(record)
    except SkipRecord as exc:
        return Skip(delay_ms=exc.delay_ms)
    except FailRecord as exc:
        return Fail(reason=exc.reason)
    except Exception as exc:
        return Transient(error=exc)

    if isinstance(result, (Skip, Fail, Transient, Success)):
        return result
    return Success(info=result)


def describe_error(error: Any) -> Any:
    """Render an error for persistence: tracebacks for exceptions, anything else as-is."""
    if isinstance(error, BaseException):
        return "".join(traceback.format_exception(error)).rstrip()
    return error
