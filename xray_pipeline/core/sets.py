"""
Set helpers for hostname lists.

These operate on small lists (the hosts of a single app). ``unique_union`` is
quadratic in the input sizes and is not meant for large inputs.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")
H = TypeVar("H", bound=Hashable)


def unique_union(a: Sequence[T], b: Sequence[T]) -> list[T]:
    """Return ``a`` followed by the elements of ``b`` not present in ``a``.

    Order is preserved: all of ``a`` first, then the residual of ``b`` in its
    own order. Each element of ``b`` is checked against the result built so
    far, so repeats within ``b`` are dropped too. Runs in O(len(a) * len(b)).
    """
    ret = list(a)
    for be in b:
        if not any(re == be for re in ret):
            ret.append(be)
    return ret


def dedup(a: list[T]) -> list[T]:
    """Remove duplicate entries from ``a`` in place and return it.

    Each duplicate is overwritten with the current last element and the list
    is shrunk by one, so the resulting order is unspecified.
    """
    length = len(a) - 1
    i = 0
    while i < length:
        j = i + 1
        while j <= length:
            if a[i] == a[j]:
                a[j] = a[length]
                a.pop()
                length -= 1
            else:
                j += 1
        i += 1
    return a


def to_set(*items: H) -> set[H]:
    """Build a membership set from the given items."""
    return set(items)


def combine(a: set[H], b: Iterable[H]) -> set[H]:
    """Add every member of ``b`` to ``a`` and return ``a``."""
    a.update(b)
    return a
