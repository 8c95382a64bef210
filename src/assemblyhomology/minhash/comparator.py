"""Sketch comparator contract and the set of available comparators."""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Iterator

from assemblyhomology.domain.ids import ImplementationName, SketchDBName
from assemblyhomology.domain.models import DistanceRecord, ImplementationInformation, SketchDatabase


class Cancellation:
    """Thread-safe cancellation flag for a running comparison."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)


class SketchComparator(ABC):
    """Wraps one MinHash implementation."""

    @property
    @abstractmethod
    def implementation_information(self) -> ImplementationInformation: ...

    @property
    def implementation_name(self) -> ImplementationName:
        return self.implementation_information.implementation_name

    @abstractmethod
    def get_database(self, name: SketchDBName, location: Path) -> SketchDatabase:
        """Open a sketch database.

        Raises NotASketchError if ``location`` is not a sketch this
        implementation can read.
        """

    @abstractmethod
    def get_sketch_ids(self, db: SketchDatabase) -> list[str]:
        """Return the sequence IDs in ``db``."""

    @abstractmethod
    def iter_distances(
        self,
        query: SketchDatabase,
        reference: SketchDatabase,
        cancellation: Cancellation | None = None,
    ) -> Iterator[DistanceRecord]:
        """Lazily yield the distances from the single query sequence to ``reference``.

        Records are unordered and tagged with the reference's name. The
        comparison may not start until the first record is requested. Raises
        ComparatorTimeoutError or QueryCancelledError if the comparison does
        not finish.
        """


class ComparatorSet:
    """Comparators keyed by case-insensitive implementation name."""

    def __init__(self, comparators: Iterable[SketchComparator] = ()) -> None:
        self._by_name: dict[str, SketchComparator] = {}
        for c in comparators:
            key = c.implementation_name.key
            if key in self._by_name:
                raise ValueError(f"Duplicate implementation: {key}")
            self._by_name[key] = c

    def find(self, name: ImplementationName) -> SketchComparator | None:
        return self._by_name.get(name.key)

    def get(self, name: ImplementationName) -> SketchComparator:
        comparator = self.find(name)
        if comparator is None:
            raise ValueError(f"No such implementation: {name.name}")
        return comparator

    def __iter__(self) -> Iterator[SketchComparator]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)
