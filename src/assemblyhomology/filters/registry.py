"""Filter factory registry, built once at startup from configuration."""
from __future__ import annotations

import importlib
import inspect
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from assemblyhomology.domain.exceptions import ConfigurationError
from assemblyhomology.domain.ids import FilterID, is_blank
from assemblyhomology.filters.factory import DistanceFilterFactory
from assemblyhomology.filters.kbase import KBaseAuthenticatedFilterFactory

log = logging.getLogger(__name__)

# Closed set of filter kinds available by short name.
BUILTIN_FACTORIES: Mapping[str, type[DistanceFilterFactory]] = MappingProxyType({
    "kbase": KBaseAuthenticatedFilterFactory,
})


@dataclass(frozen=True, slots=True)
class FilterConfiguration:
    """A factory name, either a built-in kind or ``module.path:ClassName``, plus its config."""

    factory_name: str
    config: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if is_blank(self.factory_name):
            raise ValueError("factory_name cannot be null or whitespace only")
        if self.config is None:
            raise TypeError("config")
        for key in self.config:
            if is_blank(key):
                raise ValueError("config key cannot be null or whitespace only")
        object.__setattr__(self, "factory_name", self.factory_name.strip())
        object.__setattr__(self, "config", MappingProxyType(dict(self.config)))

    def __hash__(self) -> int:
        return hash((self.factory_name, tuple(sorted(self.config.items()))))


def _locate(name: str) -> object:
    if name in BUILTIN_FACTORIES:
        return BUILTIN_FACTORIES[name]
    if ":" in name:
        module_name, _, attr = name.partition(":")
    else:
        module_name, _, attr = name.rpartition(".")
    if not module_name or not attr:
        raise ConfigurationError(f"Cannot load class {name}: not a built-in filter or a module path")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load class {name}: {e}") from e


def load_filter_factory(cfg: FilterConfiguration) -> DistanceFilterFactory:
    """Locate and instantiate the factory for one configuration entry.

    Raises ConfigurationError if the class cannot be found, is not a concrete
    DistanceFilterFactory or fails to construct.
    """
    name = cfg.factory_name
    cls = _locate(name)
    if not inspect.isclass(cls) or not issubclass(cls, DistanceFilterFactory):
        raise ConfigurationError(
            f"Module {name} must implement {DistanceFilterFactory.__name__} interface"
        )
    if inspect.isabstract(cls):
        raise ConfigurationError(f"Module {name} is abstract and cannot be instantiated")
    try:
        factory = cls(dict(cfg.config))
    except ConfigurationError as e:
        raise ConfigurationError(f"Module {name} could not be instantiated: {e}") from e
    except Exception as e:  # any constructor failure is a configuration problem
        raise ConfigurationError(
            f"Module {name} could not be instantiated: {type(e).__name__}: {e}"
        ) from e
    log.info("Loaded filter factory %s with ID %s", name, factory.id)
    return factory


class FilterRegistry:
    """Read-only set of filter factories with unique IDs."""

    def __init__(self, factories: Iterable[DistanceFilterFactory] = ()) -> None:
        self._factories: tuple[DistanceFilterFactory, ...] = tuple(factories)
        seen: set[FilterID] = set()
        for f in self._factories:
            if f.id in seen:
                raise ConfigurationError(f"Duplicate filter ID: {f.id}")
            seen.add(f.id)

    @classmethod
    def from_configs(cls, configs: Iterable[FilterConfiguration]) -> "FilterRegistry":
        return cls(load_filter_factory(c) for c in configs)

    @classmethod
    def from_settings(cls, filters: Iterable[Mapping]) -> "FilterRegistry":
        """Build from ``Settings.FILTERS`` style ``{"factory": ..., "config": {...}}`` entries."""
        return cls.from_configs(
            FilterConfiguration(f["factory"], f.get("config") or {}) for f in filters
        )

    def get(self, filter_id: FilterID) -> DistanceFilterFactory | None:
        for f in self._factories:
            if f.id == filter_id:
                return f
        return None

    def __contains__(self, filter_id: object) -> bool:
        return isinstance(filter_id, FilterID) and self.get(filter_id) is not None

    def __iter__(self):
        return iter(self._factories)

    def __len__(self) -> int:
        return len(self._factories)

    @property
    def ids(self) -> list[FilterID]:
        return sorted(f.id for f in self._factories)
