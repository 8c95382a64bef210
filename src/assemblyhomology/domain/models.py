"""Domain value objects: sketch databases, distances, namespaces and sequence metadata."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from assemblyhomology.domain.exceptions import IncompatibleSketchesError
from assemblyhomology.domain.ids import (
    DataSourceID,
    FilterID,
    ImplementationName,
    LoadID,
    NamespaceID,
    SketchDBName,
    check_string,
    is_blank,
)

DEFAULT_SOURCE_DATABASE_ID = "default"


@dataclass(frozen=True, slots=True)
class MinHashParameters:
    """Sketch parameters. Exactly one of ``sketch_size`` and ``scaling`` is set."""

    kmer_size: int
    sketch_size: int | None = None
    scaling: int | None = None

    def __post_init__(self) -> None:
        if self.kmer_size < 1:
            raise ValueError("kmer size must be at least 1")
        if (self.sketch_size is None) == (self.scaling is None):
            raise ValueError("Exactly one of sketch size or scaling must be set")
        if self.sketch_size is not None and self.sketch_size < 1:
            raise ValueError("sketch size must be at least 1")
        if self.scaling is not None and self.scaling < 1:
            raise ValueError("scaling must be at least 1")


@dataclass(frozen=True, slots=True)
class ImplementationInformation:
    implementation_name: ImplementationName
    version: str
    expected_file_extension: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", check_string(self.version, "version"))


@dataclass(frozen=True, slots=True)
class SketchDatabase:
    """A MinHash sketch database on disk."""

    name: SketchDBName
    implementation_information: ImplementationInformation
    parameters: MinHashParameters
    location: Path
    sequence_count: int

    def __post_init__(self) -> None:
        if self.sequence_count < 1:
            raise ValueError("sequence count must be at least 1")

    @property
    def implementation_name(self) -> ImplementationName:
        return self.implementation_information.implementation_name

    def check_is_queryable_by(self, query: SketchDatabase, strict: bool) -> list[str]:
        """Check whether ``query`` can be measured against this database.

        Returns any warnings; raises IncompatibleSketchesError if the sketches
        cannot be compared.
        """
        if query is None:
            raise TypeError("query")
        if self.implementation_name.key != query.implementation_name.key:
            raise IncompatibleSketchesError(
                "Implementations for sketches do not match: "
                f"{self.implementation_name.name} {query.implementation_name.name}"
            )
        target, q = self.parameters, query.parameters
        if target.kmer_size != q.kmer_size:
            raise IncompatibleSketchesError(
                "Kmer size for sketches are not compatible: "
                f"{target.kmer_size} {q.kmer_size}"
            )
        if (target.scaling is None) != (q.scaling is None):
            raise IncompatibleSketchesError(
                "Both sketches must use either absolute sketch counts or scaling"
            )
        if target.scaling is not None:
            if target.scaling != q.scaling:
                raise IncompatibleSketchesError(
                    "Scaling parameters for sketches are not compatible: "
                    f"{target.scaling} {q.scaling}"
                )
            return []
        if strict:
            if target.sketch_size != q.sketch_size:
                raise IncompatibleSketchesError(
                    f"Query sketch size {q.sketch_size} does not match target {target.sketch_size}"
                )
            return []
        if q.sketch_size < target.sketch_size:
            raise IncompatibleSketchesError(
                f"Query sketch size {q.sketch_size} may not be smaller than the target "
                f"sketch size {target.sketch_size}"
            )
        if q.sketch_size > target.sketch_size:
            return [
                f"Query sketch size {q.sketch_size} is larger than target sketch size "
                f"{target.sketch_size}"
            ]
        return []


@dataclass(frozen=True, slots=True, order=True)
class DistanceRecord:
    """A distance from the query sequence to one reference sequence.

    Ordered by distance, then sketch database name, then sequence ID.
    """

    distance: float
    sketch_db_name: SketchDBName
    sequence_id: str

    def __post_init__(self) -> None:
        if self.sketch_db_name is None:
            raise TypeError("sketch_db_name")
        if is_blank(self.sequence_id):
            raise ValueError("sequence_id cannot be null or whitespace only")
        if not 0 <= self.distance <= 1:
            raise ValueError(f"Illegal distance value: {self.distance}")


@dataclass(frozen=True, slots=True)
class SequenceMetadata:
    id: str
    source_id: str
    creation: datetime
    scientific_name: str | None = None
    related_ids: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", check_string(self.id, "id"))
        object.__setattr__(self, "source_id", check_string(self.source_id, "source_id"))
        if is_blank(self.scientific_name):
            object.__setattr__(self, "scientific_name", None)
        object.__setattr__(self, "related_ids", MappingProxyType(dict(self.related_ids)))

    def __hash__(self) -> int:
        return hash((self.id, self.source_id, self.creation, self.scientific_name,
                     tuple(sorted(self.related_ids.items()))))


@dataclass(frozen=True, slots=True)
class Namespace:
    """A named collection of sketches plus metadata, backed by one load."""

    id: NamespaceID
    sketch_database: SketchDatabase
    load_id: LoadID
    data_source_id: DataSourceID
    modification: datetime
    source_database_id: str = DEFAULT_SOURCE_DATABASE_ID
    description: str | None = None
    filter_id: FilterID | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "source_database_id",
            check_string(self.source_database_id, "source database id", 256),
        )
        if is_blank(self.description):
            object.__setattr__(self, "description", None)


@dataclass(frozen=True, slots=True)
class DistanceAndMetadata:
    namespace_id: NamespaceID
    distance: DistanceRecord
    metadata: SequenceMetadata


@dataclass(frozen=True, slots=True)
class SequenceMatches:
    """The result of measuring a query sketch against one or more namespaces."""

    namespaces: tuple[Namespace, ...]
    implementation_information: ImplementationInformation
    distances: tuple[DistanceAndMetadata, ...]
    warnings: tuple[str, ...] = ()
