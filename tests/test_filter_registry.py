"""Tests for filter factory loading and the registry."""
import pytest

from assemblyhomology.domain.exceptions import ConfigurationError
from assemblyhomology.domain.ids import FilterID
from assemblyhomology.filters.factory import DistanceFilterFactory
from assemblyhomology.filters.registry import (
    FilterConfiguration,
    FilterRegistry,
    load_filter_factory,
)

from fakes import PrefixFilterFactory


class AbstractFactory(DistanceFilterFactory):
    pass


class ExplodingFactory(PrefixFilterFactory):
    def __init__(self, config):
        raise RuntimeError("kaboom")


class NotAFactory:
    def __init__(self, config):
        pass


def test_configuration_validates():
    with pytest.raises(ValueError):
        FilterConfiguration("  ")
    with pytest.raises(ValueError):
        FilterConfiguration("fakes:PrefixFilterFactory", {" ": "x"})
    cfg = FilterConfiguration(" fakes:PrefixFilterFactory ", {"id": "foo"})
    assert cfg.factory_name == "fakes:PrefixFilterFactory"
    with pytest.raises(TypeError):
        cfg.config["id"] = "bar"
    assert hash(cfg) == hash(FilterConfiguration("fakes:PrefixFilterFactory", {"id": "foo"}))


@pytest.mark.parametrize("name", ["fakes:PrefixFilterFactory", "fakes.PrefixFilterFactory"])
def test_load_by_module_path(name):
    factory = load_filter_factory(FilterConfiguration(name, {"id": "foo", "prefix": "x"}))
    assert isinstance(factory, PrefixFilterFactory)
    assert factory.id == FilterID("foo")
    assert factory.prefix == "x"


def test_load_builtin(monkeypatch):
    created = []

    class Stub(PrefixFilterFactory):
        def __init__(self, config):
            created.append(dict(config))
            super().__init__({"id": "kbaseprod"})

    monkeypatch.setattr("assemblyhomology.filters.registry.BUILTIN_FACTORIES", {"kbase": Stub})
    factory = load_filter_factory(FilterConfiguration("kbase", {"url": "https://ws"}))
    assert factory.id == FilterID("kbaseprod")
    assert created == [{"url": "https://ws"}]


def test_load_missing_class():
    with pytest.raises(ConfigurationError, match="Cannot load class fakes:Nope"):
        load_filter_factory(FilterConfiguration("fakes:Nope"))
    with pytest.raises(ConfigurationError, match="Cannot load class no_such_module:Foo"):
        load_filter_factory(FilterConfiguration("no_such_module:Foo"))
    with pytest.raises(ConfigurationError, match="Cannot load class nodots"):
        load_filter_factory(FilterConfiguration("nodots"))


def test_load_wrong_type():
    with pytest.raises(ConfigurationError,
                       match="must implement DistanceFilterFactory interface"):
        load_filter_factory(FilterConfiguration(f"{__name__}:NotAFactory"))


def test_load_abstract():
    with pytest.raises(ConfigurationError, match="is abstract and cannot be instantiated"):
        load_filter_factory(FilterConfiguration(f"{__name__}:AbstractFactory"))


def test_load_constructor_failure():
    with pytest.raises(ConfigurationError,
                       match="could not be instantiated: RuntimeError: kaboom"):
        load_filter_factory(FilterConfiguration(f"{__name__}:ExplodingFactory"))


def test_registry_rejects_duplicate_ids():
    with pytest.raises(ConfigurationError, match="Duplicate filter ID: dup"):
        FilterRegistry([PrefixFilterFactory({"id": "dup"}), PrefixFilterFactory({"id": "dup"})])


def test_registry_lookup():
    a = PrefixFilterFactory({"id": "bbb"})
    b = PrefixFilterFactory({"id": "aaa"})
    reg = FilterRegistry([a, b])
    assert reg.get(FilterID("bbb")) is a
    assert reg.get(FilterID("ccc")) is None
    assert FilterID("aaa") in reg
    assert "aaa" not in reg
    assert len(reg) == 2
    assert list(reg) == [a, b]
    assert reg.ids == [FilterID("aaa"), FilterID("bbb")]


def test_registry_from_settings():
    reg = FilterRegistry.from_settings([
        {"factory": "fakes:PrefixFilterFactory", "config": {"id": "one"}},
        {"factory": "fakes:PrefixFilterFactory", "config": {"id": "two"}},
    ])
    assert reg.ids == [FilterID("one"), FilterID("two")]
    assert len(FilterRegistry.from_settings([])) == 0
