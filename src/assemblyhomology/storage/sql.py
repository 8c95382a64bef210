"""SQL (SQLModel) implementation of the storage interface."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator

from sqlalchemy import delete
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select

from assemblyhomology.domain.exceptions import (
    AssemblyHomologyError,
    NoSuchNamespaceError,
    NoSuchSequenceError,
    StorageError,
    StorageInitError,
)
from assemblyhomology.domain.ids import (
    DataSourceID,
    FilterID,
    ImplementationName,
    LoadID,
    NamespaceID,
    SketchDBName,
)
from assemblyhomology.domain.models import (
    ImplementationInformation,
    MinHashParameters,
    Namespace,
    SequenceMetadata,
    SketchDatabase,
)
from assemblyhomology.infra.db.engine import create_tables
from assemblyhomology.infra.db.tables import NamespaceRow, SequenceMetadataRow
from assemblyhomology.infra.db.uow import UnitOfWork
from assemblyhomology.storage.base import AssemblyHomologyStorage

log = logging.getLogger(__name__)

# keeps IN clauses under the SQLite bound parameter limit
_QUERY_CHUNK = 500
_MAX_MISSING_REPORTED = 10


def _utc(dt: datetime) -> datetime:
    # SQLite drops the zone on the way back
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


class SqlAssemblyHomologyStorage(AssemblyHomologyStorage):
    def __init__(self, engine: Engine, create: bool = True) -> None:
        self._engine = engine
        if create:
            try:
                create_tables(engine)
            except SQLAlchemyError as e:
                raise StorageInitError(f"Failed to initialize the database: {e}") from e

    @contextmanager
    def _uow(self) -> Iterator[UnitOfWork]:
        try:
            with UnitOfWork(self._engine) as uow:
                yield uow
        except SQLAlchemyError as e:
            raise StorageError(f"Connection to database failed: {e}") from e

    # --- namespaces ---

    @staticmethod
    def _to_row(ns: Namespace) -> NamespaceRow:
        db = ns.sketch_database
        return NamespaceRow(
            namespace_id=ns.id.name,
            load_id=ns.load_id.name,
            data_source_id=ns.data_source_id.name,
            source_database_id=ns.source_database_id,
            description=ns.description,
            filter_id=ns.filter_id.name if ns.filter_id else None,
            implementation=db.implementation_name.name,
            implementation_version=db.implementation_information.version,
            kmer_size=db.parameters.kmer_size,
            sketch_size=db.parameters.sketch_size,
            scaling=db.parameters.scaling,
            sketch_db_path=str(db.location),
            sequence_count=db.sequence_count,
            modification=ns.modification,
        )

    @staticmethod
    def _to_namespace(row: NamespaceRow) -> Namespace:
        try:
            nsid = NamespaceID(row.namespace_id)
            return Namespace(
                id=nsid,
                sketch_database=SketchDatabase(
                    SketchDBName(nsid.name),
                    ImplementationInformation(
                        ImplementationName(row.implementation), row.implementation_version
                    ),
                    MinHashParameters(row.kmer_size, row.sketch_size, row.scaling),
                    Path(row.sketch_db_path),
                    row.sequence_count,
                ),
                load_id=LoadID(row.load_id),
                data_source_id=DataSourceID(row.data_source_id),
                modification=_utc(row.modification),
                source_database_id=row.source_database_id,
                description=row.description,
                filter_id=FilterID(row.filter_id) if row.filter_id else None,
            )
        except (AssemblyHomologyError, ValueError) as e:
            raise StorageError(f"Unexpected value in database: {e}") from e

    def create_or_replace_namespace(self, namespace: Namespace) -> None:
        if namespace is None:
            raise TypeError("namespace")
        with self._uow() as uow:
            uow.session.merge(self._to_row(namespace))
        log.info("Namespace %s now points at load %s", namespace.id, namespace.load_id)

    def get_namespace(self, namespace_id: NamespaceID) -> Namespace:
        with self._uow() as uow:
            row = uow.session.get(NamespaceRow, namespace_id.name)
            if row is None:
                raise NoSuchNamespaceError(namespace_id.name)
            return self._to_namespace(row)

    def get_namespaces(self) -> list[Namespace]:
        with self._uow() as uow:
            rows = uow.session.exec(
                select(NamespaceRow).order_by(NamespaceRow.namespace_id)
            ).all()
            return [self._to_namespace(r) for r in rows]

    def delete_namespace(self, namespace_id: NamespaceID) -> None:
        with self._uow() as uow:
            row = uow.session.get(NamespaceRow, namespace_id.name)
            if row is None:
                raise NoSuchNamespaceError(namespace_id.name)
            uow.session.execute(
                delete(SequenceMetadataRow)
                .where(SequenceMetadataRow.namespace_id == row.namespace_id)
                .where(SequenceMetadataRow.load_id == row.load_id)
            )
            uow.session.delete(row)
        log.info("Deleted namespace %s", namespace_id)

    # --- sequence metadata ---

    def save_sequence_metadata(
        self,
        namespace_id: NamespaceID,
        load_id: LoadID,
        seqmeta: Iterable[SequenceMetadata],
    ) -> None:
        with self._uow() as uow:
            for s in seqmeta:
                uow.session.merge(SequenceMetadataRow(
                    namespace_id=namespace_id.name,
                    load_id=load_id.name,
                    sequence_id=s.id,
                    source_id=s.source_id,
                    scientific_name=s.scientific_name,
                    related_ids=dict(s.related_ids),
                    creation=s.creation,
                ))

    def get_sequence_metadata(
        self,
        namespace_id: NamespaceID,
        load_id: LoadID,
        sequence_ids: Iterable[str],
    ) -> list[SequenceMetadata]:
        wanted = list(dict.fromkeys(sequence_ids))
        found: dict[str, SequenceMetadata] = {}
        with self._uow() as uow:
            for i in range(0, len(wanted), _QUERY_CHUNK):
                chunk = wanted[i:i + _QUERY_CHUNK]
                rows = uow.session.exec(
                    select(SequenceMetadataRow)
                    .where(SequenceMetadataRow.namespace_id == namespace_id.name)
                    .where(SequenceMetadataRow.load_id == load_id.name)
                    .where(col(SequenceMetadataRow.sequence_id).in_(chunk))
                ).all()
                for r in rows:
                    found[r.sequence_id] = SequenceMetadata(
                        id=r.sequence_id,
                        source_id=r.source_id,
                        creation=_utc(r.creation),
                        scientific_name=r.scientific_name,
                        related_ids=r.related_ids or {},
                    )
        missing = sorted(set(wanted) - found.keys())
        if missing:
            raise NoSuchSequenceError(
                f"Missing sequence(s) in namespace {namespace_id.name} load {load_id.name}: "
                + ", ".join(missing[:_MAX_MISSING_REPORTED])
            )
        return [found[i] for i in wanted]
