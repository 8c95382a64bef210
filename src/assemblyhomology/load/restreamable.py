"""Load inputs that can be opened more than once.

Sources yield raw bytes; callers decode, so decoding errors can be reported
against the line that caused them.
"""
from __future__ import annotations

import io
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO


class Restreamable(ABC):
    """A source that yields a fresh binary stream on every ``open()``."""

    @property
    @abstractmethod
    def source_info(self) -> str:
        """Human readable description of the source, used in error messages."""

    @abstractmethod
    def open(self) -> BinaryIO: ...


class PathRestreamable(Restreamable):
    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def source_info(self) -> str:
        return str(self._path)

    def open(self) -> BinaryIO:
        return self._path.open("rb")


class StringRestreamable(Restreamable):
    """In-memory text, encoded as UTF-8 when opened."""

    def __init__(self, text: str | bytes, source_info: str) -> None:
        self._data = text.encode("utf-8") if isinstance(text, str) else text
        self._source_info = source_info

    @property
    def source_info(self) -> str:
        return self._source_info

    def open(self) -> BinaryIO:
        return io.BytesIO(self._data)
