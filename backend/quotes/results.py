"""
Tagged outcomes for per-entry normalisation of loosely typed input.

Each raw list entry becomes exactly one of:

- ``Ok(value)``: usable, carries the canonical value;
- ``Dropped(index, reason)``: not a record at all, silently skipped;
- ``Invalid(index, field, reason)``: shaped like a record but holding a value
  that breaks a business rule. Normalisers skip it too; the update pipeline
  reports it for incoming data.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Iterable, List, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Dropped:
    index: int
    reason: str


@dataclass(frozen=True)
class Invalid:
    index: int
    field: str
    reason: str


EntryResult = Union[Ok[Any], Dropped, Invalid]


def ok_values(results: Iterable[EntryResult]) -> List[Any]:
    return [r.value for r in results if isinstance(r, Ok)]


def invalid_entries(results: Iterable[EntryResult]) -> List[Invalid]:
    return [r for r in results if isinstance(r, Invalid)]
