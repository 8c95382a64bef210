"""Storage interface for namespaces and sequence metadata."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from assemblyhomology.domain.ids import LoadID, NamespaceID
from assemblyhomology.domain.models import Namespace, SequenceMetadata


class AssemblyHomologyStorage(ABC):
    """All methods raise StorageError if the storage system cannot be reached."""

    @abstractmethod
    def create_or_replace_namespace(self, namespace: Namespace) -> None:
        """Atomically write the namespace record, replacing any existing one."""

    @abstractmethod
    def get_namespace(self, namespace_id: NamespaceID) -> Namespace:
        """Raises NoSuchNamespaceError if the namespace does not exist."""

    @abstractmethod
    def get_namespaces(self) -> list[Namespace]:
        """All namespaces, ordered by ID."""

    @abstractmethod
    def delete_namespace(self, namespace_id: NamespaceID) -> None:
        """Remove the namespace and the sequence metadata of its current load.

        Must not be called while a load into the namespace is running.
        Raises NoSuchNamespaceError if the namespace does not exist.
        """

    @abstractmethod
    def save_sequence_metadata(
        self,
        namespace_id: NamespaceID,
        load_id: LoadID,
        seqmeta: Iterable[SequenceMetadata],
    ) -> None:
        """Write sequence metadata under a load, replacing rows with the same sequence ID."""

    @abstractmethod
    def get_sequence_metadata(
        self,
        namespace_id: NamespaceID,
        load_id: LoadID,
        sequence_ids: Iterable[str],
    ) -> list[SequenceMetadata]:
        """Raises NoSuchSequenceError if any of the sequences do not exist."""
