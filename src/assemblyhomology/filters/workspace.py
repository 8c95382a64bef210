"""Filter that passes distances for sequences stored in permitted KBase workspaces.

Sequence IDs are workspace UPAs of the form ``workspace_object_version``.
"""
from __future__ import annotations

import re
from typing import Iterable

from assemblyhomology.domain.exceptions import DistanceFilterError
from assemblyhomology.domain.models import DistanceRecord
from assemblyhomology.minhash.sinks import DistanceFilter, DistanceSink

_INTEGER = re.compile(r"[+-]?[0-9]+")


def _parse_part(upa: str, part: str, name: str) -> int:
    if not _INTEGER.fullmatch(part):
        raise DistanceFilterError(f"In workspace UPA {upa}, {name} is not an integer")
    value = int(part)
    if value < 1:
        raise DistanceFilterError(f"In workspace UPA {upa}, {name} must be > 0")
    return value


def validate_upa(upa: str) -> int:
    """Check ``upa`` is a well formed workspace UPA and return its workspace ID.

    Raises DistanceFilterError naming the failing part.
    """
    parts = upa.split("_")
    if len(parts) != 3:
        raise DistanceFilterError(f"Invalid workspace UPA: {upa}")
    _parse_part(upa, parts[2], "version")
    _parse_part(upa, parts[1], "object id")
    return _parse_part(upa, parts[0], "workspace id")


def is_valid_upa(upa: str) -> bool:
    try:
        validate_upa(upa)
    except DistanceFilterError:
        return False
    return True


class WorkspaceFilter(DistanceFilter):
    """Forwards a distance only if its sequence lives in a permitted workspace.

    Other well formed distances are dropped. An absent record raises TypeError.
    """

    def __init__(self, workspace_ids: Iterable[int], downstream: DistanceSink) -> None:
        super().__init__(downstream)
        if workspace_ids is None:
            raise TypeError("workspace_ids")
        self._workspace_ids = frozenset(workspace_ids)

    @property
    def workspace_ids(self) -> frozenset[int]:
        return self._workspace_ids

    def accept(self, record: DistanceRecord) -> None:
        if record is None:
            raise TypeError("record")
        if validate_upa(record.sequence_id) in self._workspace_ids:
            self._downstream.accept(record)
