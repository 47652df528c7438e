"""Helpers for reading untyped YAML structures.

kira.yml and work-item front matter arrive as plain dicts/lists from
ruamel.yaml. These helpers validate at runtime and narrow types statically.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def as_obj_list(obj: object) -> ObjList | None:
    if isinstance(obj, list):
        return cast(ObjList, obj)
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a scalar as a stripped string.

    YAML turns unquoted ids like ``001`` or ``42`` into ints; those are
    returned as their string form. Returns None if missing, not a scalar,
    or empty after stripping.
    """
    value = table.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        value = str(value)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_float(table: Mapping[str, object], key: str) -> float | None:
    """Get a positive number. Returns None if missing or not a positive number."""
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    if value <= 0:
        return None
    return float(value)


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested mapping with string keys."""
    return as_str_dict(table.get(key))


def get_list(table: Mapping[str, object], key: str) -> ObjList | None:
    return as_obj_list(table.get(key))
