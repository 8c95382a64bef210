"""Tests for settings parsing and context construction."""
import pytest
from pydantic import ValidationError

from assemblyhomology.build import build_comparators, build_context
from assemblyhomology.config import Settings
from assemblyhomology.domain.exceptions import ConfigurationError, MinHashInitError
from assemblyhomology.domain.ids import FilterID
from assemblyhomology.minhash.comparator import ComparatorSet


def test_filters_from_json_env(monkeypatch, tmp_path):
    monkeypatch.setenv(
        "ASSEMBLY_HOMOLOGY_FILTERS",
        '[{"factory": "fakes:PrefixFilterFactory", "config": {"id": "envfilter"}}]',
    )
    monkeypatch.setenv("ASSEMBLY_HOMOLOGY_MINHASH_TIMEOUT_SEC", "5")
    s = Settings(DATABASE_URL=f"sqlite:///{tmp_path / 'x.db'}")
    assert s.FILTERS == [{"factory": "fakes:PrefixFilterFactory", "config": {"id": "envfilter"}}]
    assert s.MINHASH_TIMEOUT_SEC == 5


@pytest.mark.parametrize("filters", [
    [{"config": {}}],
    [{"factory": "x", "config": "nope"}],
    [{"factory": "x", "config": {"port": 80}}],
    {"factory": "x"},
])
def test_bad_filter_settings(filters):
    with pytest.raises(ValidationError):
        Settings(FILTERS=filters)


def test_timeout_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(MINHASH_TIMEOUT_SEC=0)


def test_build_comparators_skips_unavailable_mash(monkeypatch, test_settings, caplog):
    def broken(*args, **kwargs):
        raise MinHashInitError("mash not found")

    monkeypatch.setattr("assemblyhomology.build.Mash", broken)
    comparators = build_comparators(test_settings)
    assert len(comparators) == 0
    assert "Mash is unavailable: mash not found" in caplog.text


def test_build_context_loads_filters(test_settings, comparator):
    test_settings.FILTERS = [{"factory": "fakes:PrefixFilterFactory", "config": {"id": "one"}}]
    ctx = build_context(test_settings, comparators=ComparatorSet([comparator]))
    try:
        assert ctx.filters.ids == [FilterID("one")]
        assert ctx.storage.get_namespaces() == []
        assert ctx.loader() is not None
    finally:
        ctx.close()
        ctx.close()


def test_build_context_bad_filter(test_settings, comparator):
    test_settings.FILTERS = [{"factory": "fakes:Missing"}]
    with pytest.raises(ConfigurationError, match="Cannot load class fakes:Missing"):
        build_context(test_settings, comparators=ComparatorSet([comparator]))
