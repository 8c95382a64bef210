"""Namespace and search DTOs. Pure Pydantic, built from domain objects."""
from __future__ import annotations

from pydantic import BaseModel

from assemblyhomology.domain.models import DistanceAndMetadata, Namespace, SequenceMatches


class NamespaceView(BaseModel):
    id: str
    impl: str
    seqcount: int
    kmersize: int
    sketchsize: int | None = None
    scaling: int | None = None
    database: str
    datasource: str
    description: str | None = None
    lastmod: int
    authsource: str | None = None

    @classmethod
    def from_namespace(cls, ns: Namespace, auth_source: str | None = None) -> "NamespaceView":
        db = ns.sketch_database
        return cls(
            id=ns.id.name,
            impl=db.implementation_name.name,
            seqcount=db.sequence_count,
            kmersize=db.parameters.kmer_size,
            sketchsize=db.parameters.sketch_size,
            scaling=db.parameters.scaling,
            database=ns.source_database_id,
            datasource=ns.data_source_id.name,
            description=ns.description,
            lastmod=int(ns.modification.timestamp() * 1000),
            authsource=auth_source,
        )


class DistanceView(BaseModel):
    namespaceid: str
    dist: float
    sourceid: str
    sciname: str | None = None
    relatedids: dict[str, str] = {}

    @classmethod
    def from_distance(cls, d: DistanceAndMetadata) -> "DistanceView":
        return cls(
            namespaceid=d.namespace_id.name,
            dist=d.distance.distance,
            sourceid=d.metadata.source_id,
            sciname=d.metadata.scientific_name,
            relatedids=dict(d.metadata.related_ids),
        )


class SearchResponse(BaseModel):
    namespaces: list[NamespaceView]
    impl: str
    implver: str
    warnings: list[str]
    distances: list[DistanceView]

    @classmethod
    def from_matches(
        cls, matches: SequenceMatches, namespaces: list[NamespaceView]
    ) -> "SearchResponse":
        info = matches.implementation_information
        return cls(
            namespaces=namespaces,
            impl=info.implementation_name.name,
            implver=info.version,
            warnings=list(matches.warnings),
            distances=[DistanceView.from_distance(d) for d in matches.distances],
        )
