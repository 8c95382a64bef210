"""Shared test fixtures.

  engine     : isolated temp-file SQLite engine.
  storage    : SQL storage on that engine.
  comparator : scripted sketch comparator registered as ``mash``.
  context    : AppContext wired to the above plus a prefix filter.
  client     : FastAPI TestClient over ``context``.
"""
import pytest

from assemblyhomology.build import build_context
from assemblyhomology.config import Settings
from assemblyhomology.filters.registry import FilterRegistry
from assemblyhomology.infra.db.engine import build_engine
from assemblyhomology.minhash.comparator import ComparatorSet
from assemblyhomology.storage.sql import SqlAssemblyHomologyStorage

from fakes import FakeComparator, PrefixFilterFactory


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'test_ah.db'}",
        TEMP_DIR=tmp_path / "temp",
        FILTERS=[],
    )


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path / 'storage.db'}")
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def storage(engine):
    return SqlAssemblyHomologyStorage(engine)


@pytest.fixture
def comparator():
    return FakeComparator()


@pytest.fixture
def prefix_factory():
    return PrefixFilterFactory({"id": "prefix", "prefix": "keep", "authsource": "prefixauth"})


@pytest.fixture
def context(test_settings, comparator, prefix_factory):
    ctx = build_context(
        test_settings,
        comparators=ComparatorSet([comparator]),
        filters=FilterRegistry([prefix_factory]),
    )
    yield ctx
    ctx.close()


@pytest.fixture
def client(context):
    """FastAPI TestClient over the test context."""
    from fastapi.testclient import TestClient
    from assemblyhomology.api.app import create_app

    app = create_app(context=context)
    with TestClient(app) as c:
        yield c
