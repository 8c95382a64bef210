"""Distance sink chain: filters that forward distances to a terminal collector.

A chain is built per query and owned by it; stages are not thread safe.
A filter that rejects a distance drops it silently. Filter errors are reserved
for malformed input.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Sequence

from assemblyhomology.domain.models import DistanceRecord
from assemblyhomology.util.ranked_set import BoundedRankedSet, RankDirection


class DistanceSink(ABC):
    """One stage of a distance chain."""

    @abstractmethod
    def accept(self, record: DistanceRecord) -> None:
        """Process a distance, forwarding it downstream if it passes.

        May raise DistanceFilterError.
        """

    @abstractmethod
    def flush(self) -> None:
        """Signal the end of the distance stream."""


class DistanceCollector(DistanceSink):
    """Terminal stage of a chain."""

    @abstractmethod
    def get_distances(self) -> list[DistanceRecord]:
        """Return the collected distances, best first."""

    def flush(self) -> None:
        pass


class DefaultDistanceCollector(DistanceCollector):
    """Keeps the ``size`` smallest distances; the largest is discarded on overflow."""

    def __init__(self, size: int) -> None:
        self._dists: BoundedRankedSet[DistanceRecord] = BoundedRankedSet(
            size, RankDirection.ASCENDING
        )

    def accept(self, record: DistanceRecord) -> None:
        if record is None:
            raise TypeError("record")
        self._dists.insert(record)

    def get_distances(self) -> list[DistanceRecord]:
        return self._dists.snapshot()


class DistanceFilter(DistanceSink):
    """A pass-through stage bound to a downstream sink."""

    def __init__(self, downstream: DistanceSink) -> None:
        if downstream is None:
            raise TypeError("downstream")
        self._downstream = downstream

    @property
    def downstream(self) -> DistanceSink:
        return self._downstream

    def flush(self) -> None:
        pass


class DefaultDistanceFilter(DistanceFilter):
    """Passes every distance on. Absent records are left to the downstream sink."""

    def accept(self, record: DistanceRecord) -> None:
        self._downstream.accept(record)


StageBuilder = Callable[[DistanceSink], DistanceFilter]


def build_chain(stages: Sequence[StageBuilder], terminal: DistanceSink) -> DistanceSink:
    """Wire ``stages`` front to back ending in ``terminal`` and return the head.

    Each builder receives the sink that follows it. With no stages the terminal
    itself is the head.
    """
    head = terminal
    for builder in reversed(stages):
        head = builder(head)
    return head


def flush_chain(head: DistanceSink) -> None:
    """Flush every stage from the head to the terminal."""
    sink: DistanceSink | None = head
    while sink is not None:
        sink.flush()
        sink = sink.downstream if isinstance(sink, DistanceFilter) else None
