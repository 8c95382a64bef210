"""Loads a sketch database and its sequence metadata into a namespace."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator

from assemblyhomology.domain.exceptions import LoadInputParseError
from assemblyhomology.domain.ids import FilterID, LoadID, SketchDBName
from assemblyhomology.domain.models import Namespace, SequenceMetadata
from assemblyhomology.filters.registry import FilterRegistry
from assemblyhomology.load.namespace_info import NamespaceLoadInfo
from assemblyhomology.load.restreamable import Restreamable
from assemblyhomology.load.seqmeta_info import SeqMetaLoadInfo
from assemblyhomology.minhash.comparator import SketchComparator
from assemblyhomology.storage.base import AssemblyHomologyStorage

log = logging.getLogger(__name__)

BATCH_SIZE = 100
_EXAMPLE_COUNT = 3

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Loader:
    """Loads namespaces.

    A load is not safe to run concurrently with another load into the same
    namespace. Metadata batches written by a failed load stay in storage under
    its load ID but are unreachable until that load ID is published.
    """

    def __init__(
        self,
        storage: AssemblyHomologyStorage,
        filters: FilterRegistry | None = None,
        clock: Clock = _utc_now,
    ) -> None:
        if storage is None:
            raise TypeError("storage")
        self._storage = storage
        self._filters = filters if filters is not None else FilterRegistry()
        self._clock = clock

    def load(
        self,
        load_id: LoadID,
        comparator: SketchComparator,
        sketch_db_location: Path,
        namespace_yaml: Restreamable,
        sequence_metadata: Restreamable,
    ) -> Namespace:
        """Load the sketch database and metadata, then point the namespace at ``load_id``.

        Raises LoadInputParseError for invalid or inconsistent input,
        MinHashError if the sketch database cannot be read and StorageError if
        storage fails. The namespace record is only written once every
        metadata batch has been saved.
        """
        with namespace_yaml.open() as f:
            nsinfo = NamespaceLoadInfo.from_yaml(f, namespace_yaml.source_info)
        sketch_db = comparator.get_database(SketchDBName(nsinfo.id.name), Path(sketch_db_location))
        sketch_ids = set(comparator.get_sketch_ids(sketch_db))
        seqmeta_ids = {info.id for _, info in self._iter_seqmeta(sequence_metadata)}
        if nsinfo.filter_id is not None:
            self._validate_sequence_ids(nsinfo.filter_id, sketch_ids)
        self._check_equal(seqmeta_ids, sequence_metadata.source_info, sketch_ids, sketch_db_location)
        count = self._save_metadata(nsinfo, load_id, sequence_metadata)
        namespace = nsinfo.to_namespace(sketch_db, load_id, self._clock())
        self._storage.create_or_replace_namespace(namespace)
        log.info(
            "Loaded %d sequences into namespace %s with load ID %s", count, nsinfo.id, load_id
        )
        return namespace

    @staticmethod
    def _iter_seqmeta(source: Restreamable) -> Iterator[tuple[int, SeqMetaLoadInfo]]:
        with source.open() as f:
            for lineno, raw in enumerate(f, start=1):
                location = f"{source.source_info} line {lineno}"
                try:
                    line = raw.decode("utf-8")
                except UnicodeDecodeError as e:
                    raise LoadInputParseError(
                        f"Error decoding source {location}: {e}"
                    ) from e
                if not line.strip():
                    continue
                yield lineno, SeqMetaLoadInfo.from_json(line, location)

    def _validate_sequence_ids(self, filter_id: FilterID, sketch_ids: set[str]) -> None:
        factory = self._filters.get(filter_id)
        if factory is None:
            raise LoadInputParseError(
                f"Filter ID {filter_id.name} is specified, but no filter with that ID "
                "is configured"
            )
        for sid in sorted(sketch_ids):
            if not factory.validate_id(sid):
                raise LoadInputParseError(
                    f"Filter {filter_id.name} reports that sequence ID {sid} is not valid"
                )

    @staticmethod
    def _check_equal(
        seqmeta_ids: set[str],
        seqmeta_source: str,
        sketch_ids: set[str],
        sketch_db_location: Path,
    ) -> None:
        if seqmeta_ids == sketch_ids:
            return
        extra = seqmeta_ids - sketch_ids
        if extra:
            source = seqmeta_source
        else:
            extra = sketch_ids - seqmeta_ids
            source = str(sketch_db_location)
        examples = ", ".join(sorted(extra)[:_EXAMPLE_COUNT])
        raise LoadInputParseError(
            "IDs in the sketch database and sequence metadata file don't match. "
            f"For example, {source} has extra IDs [{examples}]"
        )

    def _save_metadata(
        self, nsinfo: NamespaceLoadInfo, load_id: LoadID, source: Restreamable
    ) -> int:
        count = 0
        batch: list[SeqMetaLoadInfo] = []
        for _, info in self._iter_seqmeta(source):
            batch.append(info)
            if len(batch) >= BATCH_SIZE:
                count += self._save_batch(nsinfo, load_id, batch)
                batch = []
        if batch:
            count += self._save_batch(nsinfo, load_id, batch)
        return count

    def _save_batch(
        self, nsinfo: NamespaceLoadInfo, load_id: LoadID, batch: list[SeqMetaLoadInfo]
    ) -> int:
        # every record in a batch shares one creation time
        creation = self._clock()
        seqs: list[SequenceMetadata] = [b.to_sequence_metadata(creation) for b in batch]
        self._storage.save_sequence_metadata(nsinfo.id, load_id, seqs)
        return len(seqs)
