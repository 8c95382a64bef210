"""Validated identifier value types."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import ClassVar

from assemblyhomology.domain.exceptions import IllegalParameterError, MissingParameterError


def is_blank(s: str | None) -> bool:
    return s is None or not s.strip()


def check_string(value: str | None, name: str, max_len: int = -1) -> str:
    """Return ``value`` stripped.

    Raises MissingParameterError if the value is None or whitespace only and
    IllegalParameterError if it is longer than ``max_len`` code points
    (no limit if ``max_len`` < 1).
    """
    if is_blank(value):
        raise MissingParameterError(name)
    value = value.strip()
    if max_len > 0 and len(value) > max_len:
        raise IllegalParameterError(f"{name} size greater than limit {max_len}")
    return value


@dataclass(frozen=True, slots=True, order=True)
class _Name:
    name: str

    _label: ClassVar[str] = "name"
    _max_len: ClassVar[int] = 256
    _illegal: ClassVar[re.Pattern[str] | None] = None

    def __post_init__(self) -> None:
        name = check_string(self.name, self._label, self._max_len)
        if self._illegal is not None:
            m = self._illegal.search(name)
            if m:
                raise IllegalParameterError(
                    f"Illegal character in {self._label} {name}: {m.group()}"
                )
        object.__setattr__(self, "name", name)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True, order=True)
class NamespaceID(_Name):
    _label: ClassVar[str] = "namespace id"
    _illegal: ClassVar[re.Pattern[str] | None] = re.compile(r"[^A-Za-z\d_]+")


@dataclass(frozen=True, slots=True, order=True)
class FilterID(_Name):
    _label: ClassVar[str] = "filter id"
    _max_len: ClassVar[int] = 20
    _illegal: ClassVar[re.Pattern[str] | None] = re.compile(r"[^a-z]+")

    DEFAULT: ClassVar["FilterID"]


FilterID.DEFAULT = FilterID("default")


@dataclass(frozen=True, slots=True, order=True)
class DataSourceID(_Name):
    _label: ClassVar[str] = "data source id"


@dataclass(frozen=True, slots=True, order=True)
class LoadID(_Name):
    """Tags one ingestion run of a namespace."""

    _label: ClassVar[str] = "load id"


@dataclass(frozen=True, slots=True, order=True)
class ImplementationName(_Name):
    """Name of a MinHash implementation, e.g. ``mash``."""

    _label: ClassVar[str] = "minhash implementation name"

    @property
    def key(self) -> str:
        """Case-insensitive lookup key."""
        return self.name.lower()


@dataclass(frozen=True, slots=True, order=True)
class SketchDBName:
    name: str

    def __post_init__(self) -> None:
        if is_blank(self.name):
            raise ValueError("sketch database name cannot be null or whitespace only")

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Token:
    """An authentication token. Never shown in repr."""

    token: str = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "token", check_string(self.token, "token"))
