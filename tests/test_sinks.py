"""Tests for the distance sink chain."""
import pytest

from assemblyhomology.domain.ids import SketchDBName
from assemblyhomology.domain.models import DistanceRecord
from assemblyhomology.minhash.sinks import (
    DefaultDistanceCollector,
    DefaultDistanceFilter,
    DistanceFilter,
    build_chain,
    flush_chain,
)

DB = SketchDBName("db")


def _d(dist, seqid="s"):
    return DistanceRecord(dist, DB, seqid)


class Recorder(DistanceFilter):
    def __init__(self, name, log, downstream):
        super().__init__(downstream)
        self.name = name
        self.log = log

    def accept(self, record):
        self.log.append((self.name, record.sequence_id))
        self._downstream.accept(record)

    def flush(self):
        self.log.append((self.name, "flush"))


def test_collector_keeps_smallest_distances_in_order():
    c = DefaultDistanceCollector(2)
    for d in [_d(0.3, "a"), _d(0.1, "b"), _d(0.2, "c"), _d(0.4, "d")]:
        c.accept(d)
    assert c.get_distances() == [_d(0.1, "b"), _d(0.2, "c")]


def test_collector_rejects_none():
    with pytest.raises(TypeError):
        DefaultDistanceCollector(1).accept(None)


def test_default_filter_passes_everything():
    c = DefaultDistanceCollector(10)
    f = DefaultDistanceFilter(c)
    f.accept(_d(0.5, "x"))
    assert f.downstream is c
    assert c.get_distances() == [_d(0.5, "x")]


def test_default_filter_leaves_none_to_downstream():
    f = DefaultDistanceFilter(DefaultDistanceCollector(10))
    with pytest.raises(TypeError):
        f.accept(None)


def test_filter_requires_downstream():
    with pytest.raises(TypeError):
        DefaultDistanceFilter(None)


def test_build_chain_orders_stages_front_to_back():
    log = []
    c = DefaultDistanceCollector(10)
    head = build_chain(
        [lambda s: Recorder("first", log, s), lambda s: Recorder("second", log, s)], c
    )
    head.accept(_d(0.1, "x"))
    assert log == [("first", "x"), ("second", "x")]
    flush_chain(head)
    assert log[2:] == [("first", "flush"), ("second", "flush")]
    assert c.get_distances() == [_d(0.1, "x")]


def test_build_chain_without_stages_returns_terminal():
    c = DefaultDistanceCollector(1)
    assert build_chain([], c) is c
    flush_chain(c)
