"""One line of the sequence metadata stream: a JSON object with keys
``id``, ``sourceid``, ``sciname`` and ``relatedids``.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from assemblyhomology.domain.exceptions import AssemblyHomologyError, LoadInputParseError
from assemblyhomology.domain.models import SequenceMetadata
from assemblyhomology.load.parse import get_string

RELATED_IDS = "relatedids"


@dataclass(frozen=True, slots=True)
class SeqMetaLoadInfo:
    id: str
    source_id: str
    scientific_name: str | None = None
    related_ids: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "related_ids", MappingProxyType(dict(self.related_ids)))

    def __hash__(self) -> int:
        return hash((self.id, self.source_id, self.scientific_name,
                     tuple(sorted(self.related_ids.items()))))

    @classmethod
    def from_json(cls, line: str, source_info: str) -> "SeqMetaLoadInfo":
        try:
            data = json.loads(line)
        except ValueError as e:
            raise LoadInputParseError(f"Error parsing source {source_info}: {e}") from e
        if not isinstance(data, dict):
            raise LoadInputParseError(f"Expected mapping at / in {source_info}")
        return cls(
            id=get_string(data, "id", source_info),
            source_id=get_string(data, "sourceid", source_info),
            scientific_name=get_string(data, "sciname", source_info, optional=True),
            related_ids=cls._related_ids(data, source_info),
        )

    @staticmethod
    def _related_ids(data: dict, source_info: str) -> dict[str, str]:
        rel = data.get(RELATED_IDS)
        if rel is None:
            return {}
        if not isinstance(rel, dict):
            raise LoadInputParseError(f"Expected mapping at {RELATED_IDS} in {source_info}")
        for k, v in rel.items():
            if not isinstance(v, str):
                raise LoadInputParseError(
                    f"Expected string, got {v!r} at {RELATED_IDS}/{k} in {source_info}"
                )
        return dict(rel)

    def to_sequence_metadata(self, creation: datetime) -> SequenceMetadata:
        try:
            return SequenceMetadata(
                id=self.id,
                source_id=self.source_id,
                creation=creation,
                scientific_name=self.scientific_name,
                related_ids=self.related_ids,
            )
        except AssemblyHomologyError as e:
            raise LoadInputParseError(f"Illegal sequence metadata {self.id}: {e}") from e
