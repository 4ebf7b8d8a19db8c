"""First-match lookup over explicitly ordered candidates.

Rate bands, GL mapping fallback chains and GL override rules all resolve
"the first configuration that applies". They share this helper so the
priority contract lives in one place: candidates are ordered by the
caller, evaluation short-circuits on the first hit, and nothing after it
is looked at.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TypeVar

T = TypeVar("T")


def find_first(candidates: Iterable[T], predicate: Callable[[T], bool]) -> T | None:
    """Return the first candidate satisfying predicate, or None."""
    for candidate in candidates:
        if predicate(candidate):
            return candidate
    return None


def by_priority_desc(items: Iterable[T], key: Callable[[T], int]) -> list[T]:
    """Order items highest priority first; ties keep their input order."""
    return sorted(items, key=lambda item: -key(item))
