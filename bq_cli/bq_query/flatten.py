"""Flatten nested BigQuery rows into path-keyed scalar mappings.

BigQuery returns RECORD columns as nested mappings and REPEATED columns as
lists. Line-oriented and tabular renderers need a single level of keys, so
nested fields are addressed by dotted paths (``address.city``) and array
elements by bracketed indices (``tags[0]``).

``None`` is always carried through as an explicit entry, and so is an empty
record or array below the root, so that column sets stay stable across rows
that omit optional data.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .types import FlatRow, Row


def flatten(row: Row) -> FlatRow:
    """Return a one-level mapping of every leaf scalar in ``row``."""
    flat: FlatRow = {}
    for key, value in row.items():
        _flatten_into(flat, str(key), value)
    return flat


def explode(row: Row) -> list[FlatRow]:
    """Flatten ``row`` for tabular display, fanning out arrays of records.

    Each element of an array of records becomes its own sub-row, keyed without
    an index so sibling sub-rows share columns. Scalar fields of the parent are
    repeated on every sub-row, and independent arrays combine as a cross product.
    """
    return _explode_mapping(row, "")


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _is_array(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _flatten_into(flat: FlatRow, path: str, value: Any) -> None:
    if isinstance(value, Mapping):
        if not value:
            flat[path] = None
            return
        for key, child in value.items():
            _flatten_into(flat, _join(path, str(key)), child)
    elif _is_array(value):
        if not value:
            flat[path] = None
            return
        for index, child in enumerate(value):
            _flatten_into(flat, f"{path}[{index}]", child)
    else:
        flat[path] = value


def _explode_mapping(record: Row, prefix: str) -> list[FlatRow]:
    rows: list[FlatRow] = [{}]
    for key, value in record.items():
        branches = _explode_value(_join(prefix, str(key)), value)
        rows = [{**left, **right} for left in rows for right in branches]
    return rows


def _explode_value(path: str, value: Any) -> list[FlatRow]:
    if isinstance(value, Mapping):
        if not value:
            return [{path: None}]
        return _explode_mapping(value, path)
    if _is_array(value) and value and all(isinstance(item, Mapping) for item in value):
        branches: list[FlatRow] = []
        for item in value:
            branches.extend(_explode_value(path, item))
        return branches
    flat: FlatRow = {}
    _flatten_into(flat, path, value)
    return [flat]
