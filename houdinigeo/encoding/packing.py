"""
Value packing conventions of the geo format:
- tuple grouping of flat attribute values
- string tables (unique strings + per-element indices)
- point group selections, either dense ("i8") or boolean run-length ("boolRLE")
"""
from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from ..errors import GeoFormatError


# Groups over fewer points than this are written as one boolean per point.
DENSE_SELECTION_LIMIT = 17


def _plain(values: Sequence[Any]) -> List[Any]:
    if isinstance(values, np.ndarray):
        return values.tolist()
    return [v.item() if isinstance(v, np.generic) else v for v in values]


def break_into_tuples(values: Sequence[Any], tuple_size: int) -> List[List[Any]]:
    """
    Group a flat sequence into rows of ``tuple_size``.

    A tuple size of 1 puts the whole input in a single row, and empty input
    gives no rows at all. A trailing partial row is dropped.
    """
    flat = _plain(values)
    if not flat:
        return []
    size = int(tuple_size)
    if size == 1:
        return [flat]
    if size < 1:
        raise ValueError(f"Tuple size must be >= 1, got {tuple_size}.")
    return [flat[i:i + size] for i in range(0, len(flat) - size + 1, size)]


def dedupe_strings(values: Sequence[str]) -> Tuple[List[str], List[int]]:
    """Unique strings in first-seen order, and the table index of every input value."""
    table: List[str] = []
    lookup: Dict[str, int] = {}
    indices: List[int] = []
    for value in values:
        idx = lookup.get(value)
        if idx is None:
            idx = len(table)
            lookup[value] = idx
            table.append(value)
        indices.append(idx)
    return table, indices


def membership_mask(ids: Sequence[int], count: int) -> np.ndarray:
    """Boolean array of length ``count``; ids outside [0, count) are ignored."""
    mask = np.zeros(int(count), dtype=bool)
    idx = np.asarray(list(ids), dtype=np.int64).ravel()
    idx = idx[(idx >= 0) & (idx < mask.size)]
    mask[idx] = True
    return mask


def bool_rle_encode(mask: Sequence[bool]) -> List[Any]:
    """
    Encode a boolean sequence as [length0, value0, length1, value1, ...].
    Consecutive equal values collapse into one run; the runs cover every entry.
    """
    m = np.asarray(mask, dtype=bool).ravel()
    if m.size == 0:
        return []
    edges = np.flatnonzero(m[1:] != m[:-1]) + 1
    starts = np.r_[0, edges]
    ends = np.r_[edges, m.size]
    runs: List[Any] = []
    for s, e in zip(starts, ends):
        runs.append(int(e - s))
        runs.append(bool(m[s]))
    return runs


def bool_rle_decode(runs: Sequence[Any]) -> np.ndarray:
    """Inverse of :func:`bool_rle_encode`."""
    runs = list(runs)
    if len(runs) % 2 != 0:
        raise GeoFormatError(f"boolRLE selection has odd length {len(runs)}.")
    lengths = runs[0::2]
    flags = runs[1::2]
    for n in lengths:
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise GeoFormatError(f"boolRLE run length must be a non-negative integer, got {n!r}.")
    if not lengths:
        return np.zeros(0, dtype=bool)
    return np.repeat(np.asarray([bool(f) for f in flags], dtype=bool), np.asarray(lengths, dtype=np.int64))


def dense_decode(values: Sequence[Any]) -> np.ndarray:
    try:
        return np.asarray(list(values), dtype=np.int64).astype(bool).ravel()
    except (TypeError, ValueError) as exc:
        raise GeoFormatError(f"i8 selection must hold booleans or integers: {exc}") from exc


def encode_selection(ids: Sequence[int], point_count: int) -> Tuple[str, List[Any]]:
    """
    Pick the selection encoding for a point group: ("i8", dense flags) below
    DENSE_SELECTION_LIMIT points, ("boolRLE", runs) otherwise.
    """
    mask = membership_mask(ids, point_count)
    if int(point_count) < DENSE_SELECTION_LIMIT:
        return "i8", [bool(v) for v in mask]
    return "boolRLE", bool_rle_encode(mask)


def decode_selection(encoding: str, values: Sequence[Any]) -> List[int]:
    """Member ids of a selection written by :func:`encode_selection`."""
    if encoding == "i8":
        mask = dense_decode(values)
    elif encoding == "boolRLE":
        mask = bool_rle_decode(values)
    else:
        raise GeoFormatError(f"Unsupported selection encoding '{encoding}'.")
    return np.flatnonzero(mask).tolist()


__all__ = [
    "DENSE_SELECTION_LIMIT",
    "break_into_tuples",
    "dedupe_strings",
    "membership_mask",
    "bool_rle_encode",
    "bool_rle_decode",
    "dense_decode",
    "encode_selection",
    "decode_selection",
]
