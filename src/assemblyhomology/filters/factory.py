"""Plugin contract for distance filter factories."""
from __future__ import annotations

from abc import ABC, abstractmethod

from assemblyhomology.domain.ids import FilterID, Token
from assemblyhomology.minhash.sinks import DistanceFilter, DistanceSink


class DistanceFilterFactory(ABC):
    """Builds filters of one kind.

    Implementations are constructed from a single string-keyed configuration
    mapping, e.g. ``MyFactory({"url": "https://..."})``, and are shared
    read-only across queries once built.
    """

    @property
    @abstractmethod
    def id(self) -> FilterID:
        """Unique ID of this factory within the configured set."""

    @property
    def auth_source(self) -> str | None:
        """Name of the authentication source the filters rely on, if any.

        Namespaces queried together must agree on it.
        """
        return None

    @abstractmethod
    def get_filter(self, downstream: DistanceSink, token: Token | None = None) -> DistanceFilter:
        """Build a filter forwarding accepted distances to ``downstream``.

        May raise DistanceFilterError or DistanceFilterAuthenticationError.
        """

    @abstractmethod
    def validate_id(self, sequence_id: str) -> bool:
        """Whether ``sequence_id`` is acceptable to filters of this kind."""
