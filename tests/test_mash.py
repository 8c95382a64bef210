"""Tests for the mash comparator with the mash binary replaced by a scripted Popen."""
import subprocess
import time
from pathlib import Path

import pytest

from assemblyhomology.domain.exceptions import (
    ComparatorTimeoutError,
    MinHashError,
    MinHashInitError,
    NotASketchError,
    QueryCancelledError,
)
from assemblyhomology.domain.ids import SketchDBName
from assemblyhomology.domain.models import DistanceRecord
from assemblyhomology.minhash.comparator import Cancellation
from assemblyhomology.minhash.mash import Mash

HELP = b"""
Mash version 2.3

Type 'mash --license' for license and copyright information.
"""

INFO_HEADER = b"""Header:
  Hash function (seed):          MurmurHash3_x64_128 (42)
  K-mer size:                    21 (64-bit hashes)
  Alphabet:                      ACGT (canonical)
  Target min-hashes per sketch:  1000
  Sketches:                      3
"""

INFO_TABLE = b"""#Hashes\tLength\tID\tComment
1000\t5012\t1_2_3\tE. coli
1000\t4800\t4_5_6\tB. subtilis

1000\t4700\t7_8_9\t[3 seqs] NZ_1 [...]
"""

DIST = b"""1_2_3\tquery.msh\t0.0123\t0\t900/1000
4_5_6\tquery.msh\t0.2\t1e-10\t20/1000
"""


class FakeProcess:
    """Replaces ``subprocess.Popen``; replies per mash subcommand."""

    replies: dict = {}
    calls: list = []
    hang = False

    def __init__(self, command, stdout=None, stderr=None):
        FakeProcess.calls.append(command)
        out, err, rc = FakeProcess.replies.get(command[1], (b"", b"", 0))
        self._out, self._err, self._rc = out, err, rc
        self._stdout = stdout
        self.returncode = None
        self.killed = False

    def communicate(self, timeout=None):
        if FakeProcess.hang and not self.killed:
            time.sleep(timeout or 0)
            raise subprocess.TimeoutExpired("mash", timeout)
        self.returncode = -9 if self.killed else self._rc
        if self._stdout not in (None, subprocess.PIPE):
            self._stdout.write(self._out)
            return None, self._err
        return self._out, self._err

    def kill(self):
        self.killed = True


@pytest.fixture
def fake_mash(monkeypatch):
    FakeProcess.replies = {
        "-h": (HELP, b"", 0),
        "info": (INFO_HEADER, b"", 0),
        "dist": (DIST, b"", 0),
    }
    FakeProcess.calls = []
    FakeProcess.hang = False
    monkeypatch.setattr("assemblyhomology.minhash.mash.subprocess.Popen", FakeProcess)
    return FakeProcess


@pytest.fixture
def mash(fake_mash, tmp_path):
    return Mash(tmp_path / "mashtemp", timeout_sec=1)


def _db(mash, name="ref", path="/data/ref.msh", count=3):
    FakeProcess.replies["info"] = (INFO_HEADER.replace(b"3\n", f"{count}\n".encode()), b"", 0)
    return mash.get_database(SketchDBName(name), Path(path))


def test_version_from_help(mash):
    info = mash.implementation_information
    assert info.implementation_name.name == "mash"
    assert info.version == "2.3"
    assert info.expected_file_extension == ".msh"
    assert FakeProcess.calls[0] == ["mash", "-h"]


def test_init_fails_when_mash_missing(monkeypatch, tmp_path):
    def missing(*args, **kwargs):
        raise FileNotFoundError("mash")

    monkeypatch.setattr("assemblyhomology.minhash.mash.subprocess.Popen", missing)
    with pytest.raises(MinHashInitError, match="Error running mash"):
        Mash(tmp_path)


def test_get_database(mash):
    db = _db(mash)
    assert db.name == SketchDBName("ref")
    assert db.parameters.kmer_size == 21
    assert db.parameters.sketch_size == 1000
    assert db.parameters.scaling is None
    assert db.sequence_count == 3
    assert db.location == Path("/data/ref.msh")
    assert FakeProcess.calls[-1] == ["mash", "info", "-H", "/data/ref.msh"]


def test_get_database_wrong_extension(mash):
    with pytest.raises(NotASketchError, match="must end with .msh"):
        mash.get_database(SketchDBName("q"), Path("/data/query.fasta"))


def test_get_database_not_a_sketch(mash):
    FakeProcess.replies["info"] = (
        b"", b"terminate called after throwing an instance of 'kj::Exception'", 134
    )
    with pytest.raises(NotASketchError) as exc:
        mash.get_database(SketchDBName("q"), Path("/data/query.msh"))
    assert "terminate called" in exc.value.comparator_output


def test_get_database_other_failure(mash):
    FakeProcess.replies["info"] = (b"", b"ERROR: file not found", 1)
    with pytest.raises(MinHashError, match="Error running mash: ERROR: file not found"):
        mash.get_database(SketchDBName("q"), Path("/data/query.msh"))


def test_get_database_unparseable_output(mash):
    FakeProcess.replies["info"] = (b"what\n", b"", 0)
    with pytest.raises(MinHashError, match="Unexpected mash info output"):
        mash.get_database(SketchDBName("q"), Path("/data/query.msh"))


def test_get_sketch_ids(mash, tmp_path):
    db = _db(mash)
    FakeProcess.replies["info"] = (INFO_TABLE, b"", 0)
    assert mash.get_sketch_ids(db) == ["1_2_3", "4_5_6", "7_8_9"]
    assert FakeProcess.calls[-1] == ["mash", "info", "-t", "/data/ref.msh"]
    assert list((tmp_path / "mashtemp").iterdir()) == []


def test_iter_distances(mash, tmp_path):
    ref = _db(mash)
    query = _db(mash, "<query>", "/tmp/query.msh", count=1)

    dists = list(mash.iter_distances(query, ref))

    assert dists == [
        DistanceRecord(0.0123, SketchDBName("ref"), "1_2_3"),
        DistanceRecord(0.2, SketchDBName("ref"), "4_5_6"),
    ]
    assert FakeProcess.calls[-1] == [
        "mash", "dist", "-d", "0.5", "/data/ref.msh", "/tmp/query.msh"
    ]
    assert list((tmp_path / "mashtemp").iterdir()) == []


def test_iter_distances_requires_single_query(mash):
    ref = _db(mash)
    with pytest.raises(ValueError, match="Only 1 query sequence is allowed"):
        mash.iter_distances(ref, ref)


def test_iter_distances_bad_output(mash, tmp_path):
    ref = _db(mash)
    query = _db(mash, "<query>", "/tmp/query.msh", count=1)
    FakeProcess.replies["dist"] = (b"1_2_3\tquery.msh\tNaNaN\n", b"", 0)
    with pytest.raises(MinHashError, match="Unexpected mash dist output"):
        list(mash.iter_distances(query, ref))
    assert list((tmp_path / "mashtemp").iterdir()) == []


def test_timeout_kills_process(mash, tmp_path):
    ref = _db(mash)
    query = _db(mash, "<query>", "/tmp/query.msh", count=1)
    FakeProcess.hang = True
    with pytest.raises(ComparatorTimeoutError, match="Timed out waiting for mash to run"):
        list(mash.iter_distances(query, ref))
    assert list((tmp_path / "mashtemp").iterdir()) == []


def test_cancellation_kills_process(mash):
    ref = _db(mash)
    query = _db(mash, "<query>", "/tmp/query.msh", count=1)
    FakeProcess.hang = True
    cancellation = Cancellation()
    cancellation.cancel()
    with pytest.raises(QueryCancelledError):
        list(mash.iter_distances(query, ref, cancellation))


def test_cancellation_while_reading(mash, tmp_path):
    ref = _db(mash)
    query = _db(mash, "<query>", "/tmp/query.msh", count=1)
    cancellation = Cancellation()
    it = mash.iter_distances(query, ref, cancellation)
    assert next(it).sequence_id == "1_2_3"
    cancellation.cancel()
    with pytest.raises(QueryCancelledError):
        next(it)
    assert list((tmp_path / "mashtemp").iterdir()) == []


def test_iter_distances_starts_on_first_next(mash, tmp_path):
    ref = _db(mash)
    query = _db(mash, "<query>", "/tmp/query.msh", count=1)
    calls = len(FakeProcess.calls)

    it = mash.iter_distances(query, ref)
    assert len(FakeProcess.calls) == calls
    del it
    assert len(FakeProcess.calls) == calls
    assert list((tmp_path / "mashtemp").iterdir()) == []


def test_iter_distances_closed_early_removes_output(mash, tmp_path):
    ref = _db(mash)
    query = _db(mash, "<query>", "/tmp/query.msh", count=1)
    it = mash.iter_distances(query, ref)
    assert next(it).sequence_id == "1_2_3"
    assert len(list((tmp_path / "mashtemp").iterdir())) == 1
    it.close()
    assert list((tmp_path / "mashtemp").iterdir()) == []
