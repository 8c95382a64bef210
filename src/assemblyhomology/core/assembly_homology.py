"""Query service: namespace lookup and distance search across namespaces."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from assemblyhomology.core.compatibility import auth_source_of, check_namespace_compatibility
from assemblyhomology.domain.exceptions import (
    AuthenticationError,
    ComparatorTimeoutError,
    ConfigurationError,
    DistanceFilterAuthenticationError,
    IncompatibleSketchesError,
    InvalidSketchError,
    MinHashError,
    MissingParameterError,
    NoSuchSequenceError,
    NoTokenProvidedError,
    NotASketchError,
    QueryCancelledError,
)
from assemblyhomology.domain.ids import ImplementationName, NamespaceID, SketchDBName, Token
from assemblyhomology.domain.models import (
    DistanceAndMetadata,
    DistanceRecord,
    Namespace,
    SequenceMatches,
    SequenceMetadata,
    SketchDatabase,
)
from assemblyhomology.filters.registry import FilterRegistry
from assemblyhomology.minhash.comparator import Cancellation, ComparatorSet, SketchComparator
from assemblyhomology.minhash.sinks import (
    DefaultDistanceCollector,
    DefaultDistanceFilter,
    DistanceSink,
    build_chain,
    flush_chain,
)
from assemblyhomology.storage.base import AssemblyHomologyStorage

log = logging.getLogger(__name__)

DEFAULT_RETURN = 10
MAX_RETURN = 100
QUERY_DB_NAME = SketchDBName("<query>")


class AssemblyHomology:
    """Namespace lookups and distance queries.

    Thread safe as long as the storage and comparators are; every query gets
    its own filter chains and collector.
    """

    def __init__(
        self,
        storage: AssemblyHomologyStorage,
        comparators: ComparatorSet,
        filters: FilterRegistry | None = None,
    ) -> None:
        if storage is None:
            raise TypeError("storage")
        if comparators is None:
            raise TypeError("comparators")
        self._storage = storage
        self._comparators = comparators
        self._filters = filters if filters is not None else FilterRegistry()

    @property
    def filters(self) -> FilterRegistry:
        return self._filters

    def get_namespaces(self, ids: Iterable[NamespaceID] | None = None) -> list[Namespace]:
        """All namespaces, or the given ones. Raises NoSuchNamespaceError for unknown IDs."""
        if ids is None:
            return self._storage.get_namespaces()
        return [self._storage.get_namespace(i) for i in sorted(set(ids))]

    def get_namespace(self, namespace_id: NamespaceID) -> Namespace:
        return self._storage.get_namespace(namespace_id)

    def delete_namespace(self, namespace_id: NamespaceID) -> None:
        self._storage.delete_namespace(namespace_id)

    def get_auth_source(self, namespace: Namespace) -> str | None:
        return auth_source_of(namespace, self._filters)

    def get_expected_file_extension(self, implementation: ImplementationName) -> str | None:
        info = self._comparators.get(implementation).implementation_information
        return info.expected_file_extension

    def measure_distance(
        self,
        namespace_ids: Iterable[NamespaceID],
        sketch_path: Path,
        return_count: int,
        strict: bool,
        token: Token | None = None,
        cancellation: Cancellation | None = None,
    ) -> SequenceMatches:
        """Find the sequences closest to the single sequence in the query sketch.

        ``return_count`` outside 1 to 100 is replaced by 10. With ``strict``
        false, namespaces the query cannot be compared against are skipped with
        a warning; otherwise the first such namespace fails the query.
        Namespaces whose filter declares an auth source require ``token``.
        """
        if not 1 <= return_count <= MAX_RETURN:
            return_count = DEFAULT_RETURN
        namespaces = self.get_namespaces(namespace_ids)
        if not namespaces:
            raise MissingParameterError("namespace ids")
        self._check_filters_configured(namespaces)
        compat = check_namespace_compatibility(namespaces, self._filters)
        if compat.auth_source is not None and token is None:
            raise NoTokenProvidedError(
                f"Namespace {namespaces[0].id.name} requires {compat.auth_source} "
                "authentication, but no token was provided"
            )
        comparator = self._get_comparator(compat.implementation_name)
        query = self._get_query_db(comparator, Path(sketch_path))
        searchable, warnings = self._check_queryable(namespaces, query, strict)

        collector = DefaultDistanceCollector(return_count)
        for ns in searchable:
            if cancellation is not None and cancellation.cancelled:
                raise QueryCancelledError("Query was cancelled")
            chain = self._build_chain(ns, collector, token)
            for record in comparator.iter_distances(query, ns.sketch_database, cancellation):
                chain.accept(record)
            flush_chain(chain)

        dists = collector.get_distances()
        by_name = {ns.sketch_database.name: ns for ns in searchable}
        metadata = self._get_sequence_metadata(by_name, dists)
        results = tuple(
            DistanceAndMetadata(
                by_name[d.sketch_db_name].id, d, metadata[d.sketch_db_name][d.sequence_id]
            )
            for d in dists
        )
        log.info(
            "Query against namespaces %s returned %d of requested %d distances",
            ",".join(ns.id.name for ns in namespaces), len(results), return_count,
        )
        return SequenceMatches(
            tuple(namespaces),
            comparator.implementation_information,
            results,
            tuple(warnings),
        )

    def _check_filters_configured(self, namespaces: list[Namespace]) -> None:
        for ns in namespaces:
            if ns.filter_id is not None and self._filters.get(ns.filter_id) is None:
                raise ConfigurationError(
                    f"Application is misconfigured. Namespace {ns.id.name} uses filter "
                    f"{ns.filter_id.name}, which is not configured."
                )

    def _get_comparator(self, name: ImplementationName) -> SketchComparator:
        comparator = self._comparators.find(name)
        if comparator is None:
            raise ConfigurationError(
                f"Application is misconfigured. Implementation {name.name} stored in "
                "database but not available."
            )
        return comparator

    @staticmethod
    def _get_query_db(comparator: SketchComparator, sketch_path: Path) -> SketchDatabase:
        try:
            query = comparator.get_database(QUERY_DB_NAME, sketch_path)
        except NotASketchError as e:
            if e.comparator_output:
                log.error("minhash implementation stderr:\n%s", e.comparator_output)
            raise InvalidSketchError("The input sketch is not a valid sketch.") from e
        except (ComparatorTimeoutError, QueryCancelledError):
            raise
        except MinHashError as e:
            raise RuntimeError(f"Error loading query sketch database: {e}") from e
        if query.sequence_count != 1:
            raise InvalidSketchError("Query sketch database must have exactly one query")
        return query

    @staticmethod
    def _check_queryable(
        namespaces: list[Namespace], query: SketchDatabase, strict: bool
    ) -> tuple[list[Namespace], list[str]]:
        searchable: list[Namespace] = []
        warnings: list[str] = []
        for ns in namespaces:
            try:
                ns_warnings = ns.sketch_database.check_is_queryable_by(query, strict)
            except IncompatibleSketchesError as e:
                if strict:
                    raise IncompatibleSketchesError(
                        f"Unable to query namespace {ns.id.name} with input sketch: {e.message}"
                    ) from e
                warnings.append(f"Namespace {ns.id.name}: {e.message}")
                continue
            warnings.extend(f"Namespace {ns.id.name}: {w}" for w in ns_warnings)
            searchable.append(ns)
        if not searchable:
            raise IncompatibleSketchesError(
                "The input sketch cannot be compared to any of the selected namespaces"
            )
        return searchable, warnings

    def _build_chain(
        self, ns: Namespace, collector: DistanceSink, token: Token | None
    ) -> DistanceSink:
        factory = self._filters.get(ns.filter_id) if ns.filter_id is not None else None
        if factory is None:
            return build_chain([DefaultDistanceFilter], collector)
        try:
            return build_chain([lambda sink: factory.get_filter(sink, token)], collector)
        except DistanceFilterAuthenticationError as e:
            raise AuthenticationError(str(e)) from e

    def _get_sequence_metadata(
        self,
        by_name: dict[SketchDBName, Namespace],
        dists: list[DistanceRecord],
    ) -> dict[SketchDBName, dict[str, SequenceMetadata]]:
        ids: dict[SketchDBName, list[str]] = {}
        for d in dists:
            ids.setdefault(d.sketch_db_name, []).append(d.sequence_id)
        ret: dict[SketchDBName, dict[str, SequenceMetadata]] = {}
        for name, seqids in ids.items():
            ns = by_name[name]
            try:
                meta = self._storage.get_sequence_metadata(ns.id, ns.load_id, seqids)
            except NoSuchSequenceError as e:
                raise RuntimeError(
                    "Database is corrupt. Unable to find sequences from sketch file for "
                    f"namespace {ns.id.name}: {e.message}"
                ) from e
            ret[name] = {m.id: m for m in meta}
        return ret
