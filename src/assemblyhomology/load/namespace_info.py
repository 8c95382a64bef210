"""Namespace descriptor, a YAML mapping supplied with each load.

Keys: ``id`` and ``datasource`` (required), ``sourcedatabase``,
``description`` and ``filterid`` (optional).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import IO, Callable, TypeVar

from assemblyhomology.domain.exceptions import AssemblyHomologyError, LoadInputParseError
from assemblyhomology.domain.ids import DataSourceID, FilterID, LoadID, NamespaceID
from assemblyhomology.domain.models import DEFAULT_SOURCE_DATABASE_ID, Namespace, SketchDatabase
from assemblyhomology.load.parse import from_yaml, get_string

_T = TypeVar("_T")


def _build(kind: str, value: str, ctor: Callable[[str], _T], source_info: str) -> _T:
    try:
        return ctor(value)
    except AssemblyHomologyError as e:
        raise LoadInputParseError(f"Illegal {kind}: {value}. Source: {source_info}. {e}") from e


@dataclass(frozen=True, slots=True)
class NamespaceLoadInfo:
    id: NamespaceID
    data_source_id: DataSourceID
    source_database_id: str | None = None
    description: str | None = None
    filter_id: FilterID | None = None

    @classmethod
    def from_yaml(cls, data: str | bytes | IO, source_info: str) -> "NamespaceLoadInfo":
        doc = from_yaml(data, source_info)
        nsid = get_string(doc, "id", source_info)
        dsid = get_string(doc, "datasource", source_info)
        filter_id = get_string(doc, "filterid", source_info, optional=True)
        return cls(
            id=_build("namespace ID", nsid, NamespaceID, source_info),
            data_source_id=_build("data source ID", dsid, DataSourceID, source_info),
            source_database_id=get_string(doc, "sourcedatabase", source_info, optional=True),
            description=get_string(doc, "description", source_info, optional=True),
            filter_id=(
                _build("filter ID", filter_id, FilterID, source_info)
                if filter_id is not None else None
            ),
        )

    def to_namespace(
        self, sketch_db: SketchDatabase, load_id: LoadID, modification: datetime
    ) -> Namespace:
        return Namespace(
            id=self.id,
            sketch_database=sketch_db,
            load_id=load_id,
            data_source_id=self.data_source_id,
            modification=modification,
            source_database_id=self.source_database_id or DEFAULT_SOURCE_DATABASE_ID,
            description=self.description,
            filter_id=self.filter_id,
        )
