"""Typed metadata envelope shared by jobs, devices and device events.

Metadata is a string-keyed mapping whose values are restricted to JSON
scalars, lists and nested mappings of the same union.
"""

import math
import re
from collections.abc import Mapping
from typing import Any, TypeAlias, Union

from orchestrator.domain.exceptions import InvalidInputError

JsonScalar: TypeAlias = Union[str, int, float, bool, None]
JsonValue: TypeAlias = Union[JsonScalar, list["JsonValue"], dict[str, "JsonValue"]]
Metadata: TypeAlias = dict[str, JsonValue]

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:-]{0,63}$")
_MAX_DEPTH = 16


def validate_identifier(value: Any, field: str) -> str:
    """Return *value* if it is a well-formed external identifier.

    Identifiers are 1-64 characters, start with a letter or digit and may
    contain ``_ . : -``.
    """
    if not isinstance(value, str) or not _IDENTIFIER_RE.match(value):
        raise InvalidInputError(
            f"{field} must be 1-64 characters of letters, digits, '_', '.', ':' or '-'",
            field=field,
        )
    return value


def validate_metadata(value: Any, field: str = "metadata") -> Metadata:
    """Validate a metadata mapping and return a plain-dict copy of it.

    ``None`` is treated as an empty mapping.
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidInputError(f"{field} must be an object", field=field)
    return _copy_mapping(value, field, depth=0)


def _copy_mapping(value: Mapping, path: str, depth: int) -> Metadata:
    if depth > _MAX_DEPTH:
        raise InvalidInputError(f"{path} is nested too deeply", field=path)
    result: Metadata = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise InvalidInputError(f"{path} keys must be strings", field=path)
        result[key] = _copy_value(item, f"{path}.{key}", depth + 1)
    return result


def _copy_value(value: Any, path: str, depth: int) -> JsonValue:
    if value is None or isinstance(value, (str, bool, int)):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidInputError(f"{path} must be a finite number", field=path)
        return value
    if isinstance(value, Mapping):
        return _copy_mapping(value, path, depth)
    if isinstance(value, (list, tuple)):
        if depth > _MAX_DEPTH:
            raise InvalidInputError(f"{path} is nested too deeply", field=path)
        return [_copy_value(item, f"{path}[{i}]", depth + 1) for i, item in enumerate(value)]
    raise InvalidInputError(
        f"{path} has unsupported type '{type(value).__name__}'", field=path
    )
