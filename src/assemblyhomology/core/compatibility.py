"""Checks that a set of namespaces can be searched in one query."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from assemblyhomology.domain.exceptions import (
    IncompatibleAuthenticationError,
    IncompatibleNamespacesError,
)
from assemblyhomology.domain.ids import ImplementationName
from assemblyhomology.domain.models import Namespace
from assemblyhomology.filters.registry import FilterRegistry


@dataclass(frozen=True, slots=True)
class QueryCompatibility:
    implementation_name: ImplementationName
    auth_source: str | None


def auth_source_of(namespace: Namespace, filters: FilterRegistry) -> str | None:
    """The auth source of the namespace's filter, or None if it has no filter.

    A filter ID with no configured factory yields None; the query service
    rejects such namespaces before filtering.
    """
    if namespace.filter_id is None:
        return None
    factory = filters.get(namespace.filter_id)
    return factory.auth_source if factory is not None else None


def check_namespace_compatibility(
    namespaces: Iterable[Namespace], filters: FilterRegistry
) -> QueryCompatibility:
    """Return the shared implementation and auth source of ``namespaces``.

    Raises IncompatibleNamespacesError if the namespaces use more than one
    MinHash implementation and IncompatibleAuthenticationError if they do not
    all share the same auth source, where having none counts as a distinct
    value.
    """
    namespaces = list(namespaces)
    if not namespaces:
        raise ValueError("At least one namespace is required")
    impls = {ns.sketch_database.implementation_name.key for ns in namespaces}
    if len(impls) != 1:
        raise IncompatibleNamespacesError(
            "The selected namespaces must share the same implementation"
        )
    sources = {auth_source_of(ns, filters) for ns in namespaces}
    if len(sources) != 1:
        raise IncompatibleAuthenticationError(
            "The selected namespaces must share the same authentication source"
        )
    return QueryCompatibility(
        namespaces[0].sketch_database.implementation_name, sources.pop()
    )
