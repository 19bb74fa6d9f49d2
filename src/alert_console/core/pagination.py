"""
Local pagination over already-fetched collections.

Pages are 1-based. Out-of-range page numbers are clamped into
[1, total_pages]; an empty collection still has one (empty) page.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Page:
    """One visible slice of a collection."""
    number: int
    total_pages: int
    total_items: int
    items: tuple

    @property
    def has_previous(self) -> bool:
        return self.number > 1

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages


class Paginator:
    """Fixed page size slicing with a clamp policy."""

    def __init__(self, page_size: int) -> None:
        if page_size < 1:
            raise ValueError(f"Page size must be positive, got {page_size}")
        self.page_size = page_size

    def total_pages(self, count: int) -> int:
        return max(1, math.ceil(count / self.page_size))

    def clamp(self, page: int, count: int) -> int:
        return min(max(1, page), self.total_pages(count))

    def slice(self, items: Sequence[T], page: int) -> Page:
        number = self.clamp(page, len(items))
        start = (number - 1) * self.page_size
        return Page(
            number=number,
            total_pages=self.total_pages(len(items)),
            total_items=len(items),
            items=tuple(items[start:start + self.page_size]),
        )
