"""Fixed-capacity container retaining the best-ranked items."""
from __future__ import annotations

import heapq
from enum import Enum
from typing import Any, Generic, Protocol, TypeVar


class _Rankable(Protocol):
    def __lt__(self, other: Any, /) -> bool: ...
    def __hash__(self) -> int: ...


T = TypeVar("T", bound=_Rankable)


class RankDirection(str, Enum):
    ASCENDING = "ascending"    # smallest items are best, the maximum is evicted
    DESCENDING = "descending"  # largest items are best, the minimum is evicted


class _Inverted:
    """Heap entry with reversed ordering so ``heapq`` keeps the maximum at the root."""

    __slots__ = ("item",)

    def __init__(self, item: Any) -> None:
        self.item = item

    def __lt__(self, other: "_Inverted") -> bool:
        return other.item < self.item


class BoundedRankedSet(Generic[T]):
    """Keeps the ``capacity`` best items inserted so far under the item's natural order.

    The worst retained item sits at the root of a heap, so an insertion costs
    O(log N). At full capacity an item is kept only if it is strictly better
    than the current worst, in which case the worst is evicted; on a tie the
    existing item wins. Items equal to a retained item are ignored, so items
    must be hashable as well as ordered, with equal items hashing equally.

    Not safe for concurrent mutation.
    """

    def __init__(self, capacity: int, direction: RankDirection = RankDirection.ASCENDING) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._direction = RankDirection(direction)
        self._heap: list[Any] = []
        self._members: set[T] = set()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def direction(self) -> RankDirection:
        return self._direction

    def __len__(self) -> int:
        return len(self._members)

    def _entry(self, item: T) -> Any:
        return _Inverted(item) if self._direction is RankDirection.ASCENDING else item

    @staticmethod
    def _unwrap(entry: Any) -> Any:
        return entry.item if isinstance(entry, _Inverted) else entry

    def _is_better(self, item: T, than: T) -> bool:
        if self._direction is RankDirection.ASCENDING:
            return item < than
        return than < item

    def insert(self, item: T) -> bool:
        """Offer an item. Returns True if it was retained."""
        if item is None:
            raise TypeError("item cannot be None")
        if item in self._members:
            return False
        if len(self._members) < self._capacity:
            heapq.heappush(self._heap, self._entry(item))
            self._members.add(item)
            return True
        worst = self._unwrap(self._heap[0])
        if not self._is_better(item, worst):
            return False
        heapq.heapreplace(self._heap, self._entry(item))
        self._members.discard(worst)
        self._members.add(item)
        return True

    def snapshot(self) -> list[T]:
        """Return a new list of the retained items, best first."""
        return sorted(self._members, reverse=self._direction is RankDirection.DESCENDING)

    def __repr__(self) -> str:
        return (
            f"BoundedRankedSet(capacity={self._capacity}, direction={self._direction.value}, "
            f"items={self.snapshot()!r})"
        )
