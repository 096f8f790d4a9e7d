"""Backend-neutral filter tree for record store queries.

Backends translate these nodes into their own query language. ``matches``
evaluates a filter in-process and is the reference semantics: a comparison
against a missing field never matches.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class Lte:
    field: str
    value: Any


@dataclass(frozen=True)
class And:
    clauses: tuple["Filter", ...]


@dataclass(frozen=True)
class Or:
    clauses: tuple["Filter", ...]


Filter = Union[Eq, In, Lte, And, Or]


def matches(flt: Filter, document: dict[str, Any]) -> bool:
    """Return True if ``document`` satisfies ``flt``."""
    if isinstance(flt, Eq):
        return flt.field in document and document[flt.field] == flt.value
    if isinstance(flt, In):
        return flt.field in document and document[flt.field] in flt.values
    if isinstance(flt, Lte):
        value = document.get(flt.field)
        return value is not None and value <= flt.value
    if isinstance(flt, And):
        return all(matches(c, document) for c in flt.clauses)
    if isinstance(flt, Or):
        return any(matches(c, document) for c in flt.clauses)
    raise TypeError(f"Unsupported filter node: {flt!r}")
