"""Builds the service objects from settings. The context owns the DB engine."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.engine import Engine

from assemblyhomology.config import Settings
from assemblyhomology.core.assembly_homology import AssemblyHomology
from assemblyhomology.domain.exceptions import MinHashInitError
from assemblyhomology.filters.registry import FilterRegistry
from assemblyhomology.infra.db.engine import build_engine
from assemblyhomology.load.loader import Loader
from assemblyhomology.minhash.comparator import ComparatorSet
from assemblyhomology.minhash.mash import Mash
from assemblyhomology.storage.base import AssemblyHomologyStorage
from assemblyhomology.storage.sql import SqlAssemblyHomologyStorage

log = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: Engine
    storage: AssemblyHomologyStorage
    filters: FilterRegistry
    comparators: ComparatorSet
    assembly_homology: AssemblyHomology
    _closed: bool = field(default=False, repr=False)

    def loader(self) -> Loader:
        return Loader(self.storage, self.filters)

    def close(self) -> None:
        if not self._closed:
            self.engine.dispose()
            self._closed = True


def build_comparators(settings: Settings) -> ComparatorSet:
    """Comparators for every MinHash implementation that can be started here.

    An implementation that fails to start is logged and left out, so queries
    against its namespaces fail while the rest of the service keeps working.
    """
    comparators = []
    try:
        comparators.append(Mash(settings.TEMP_DIR, settings.MINHASH_TIMEOUT_SEC))
    except MinHashInitError as e:
        log.warning("Mash is unavailable: %s", e)
    return ComparatorSet(comparators)


def build_context(
    settings: Settings,
    *,
    comparators: ComparatorSet | None = None,
    filters: FilterRegistry | None = None,
) -> AppContext:
    """Build the application context. Raises ConfigurationError or StorageInitError."""
    if filters is None:
        filters = FilterRegistry.from_settings(settings.FILTERS)
    if comparators is None:
        comparators = build_comparators(settings)
    engine = build_engine(settings.DATABASE_URL)
    try:
        storage = SqlAssemblyHomologyStorage(engine)
    except Exception:
        engine.dispose()
        raise
    return AppContext(
        settings=settings,
        engine=engine,
        storage=storage,
        filters=filters,
        comparators=comparators,
        assembly_homology=AssemblyHomology(storage, comparators, filters),
    )
