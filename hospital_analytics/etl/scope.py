"""Scope filtering: narrow a record collection to what the caller may see."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")


def filter_by_scope(
    records: Iterable[T],
    scope: str | None,
    unrestricted: bool,
    attribute: str = "department",
) -> list[T]:
    """
    Unrestricted callers see everything; everyone else sees only records whose
    `attribute` equals `scope`. No scope and no privilege means nothing.
    """
    if unrestricted:
        return list(records)
    if not scope:
        return []
    return [r for r in records if getattr(r, attribute, None) == scope]


@dataclass(frozen=True)
class AccessScope:
    """The caller's authorization window, as resolved by the auth collaborator."""

    unrestricted: bool = False
    department: str | None = None

    def apply(self, records: Iterable[T]) -> list[T]:
        return filter_by_scope(records, self.department, self.unrestricted)

    @property
    def label(self) -> str:
        if self.unrestricted:
            return "All Departments"
        return self.department or "No Department"
