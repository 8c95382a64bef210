"""Helpers for parsing load input documents."""
from __future__ import annotations

from typing import IO, Any, Mapping

import yaml

from assemblyhomology.domain.exceptions import LoadInputParseError


def _fmt(source_info: str | None) -> str:
    if source_info is None or not source_info.strip():
        return ""
    return f" Source: {source_info}"


def from_yaml(data: str | bytes | IO, source_info: str) -> dict[str, Any]:
    """Parse a YAML document whose top level must be a mapping.

    Binary input is decoded by PyYAML; bytes that are not valid UTF-8 fail
    like any other YAML error.
    """
    try:
        parsed = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise LoadInputParseError(
            f"Error parsing source {source_info}: {type(e).__name__} {e}"
        ) from e
    if not isinstance(parsed, dict):
        raise LoadInputParseError(f"Expected mapping in top level YAML in {source_info}")
    return parsed


def get_string(
    data: Mapping[str, Any],
    key: str,
    source_info: str | None,
    optional: bool = False,
) -> str | None:
    """Get a string value from ``data``.

    Absent or empty values return None if ``optional``, otherwise raise
    LoadInputParseError. Non-string values always raise.
    """
    value = data.get(key)
    if value is None or value == "":
        if optional:
            return None
        raise LoadInputParseError(f"Missing value at {key}.{_fmt(source_info)}")
    if not isinstance(value, str):
        raise LoadInputParseError(
            f"Expected string, got {value!r} at {key}.{_fmt(source_info)}"
        )
    return value
