"""
Geo tree -> Document.

Sections are read in file order:
    fileversion/hasindex/counts -> info -> topology.pointref.indices
    -> attributes -> primitives -> pointgroups

Missing required sections, wrong scalar kinds and unknown attribute storage are
fatal (GeoFormatError). Entries the decoder cannot use (unknown attribute
categories, unsupported primitive kinds, truncated entries) are skipped with a
GeoFormatWarning and decoding continues.
"""
from __future__ import annotations

import itertools
import warnings
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import numpy as np

from ..errors import GeoFormatError, GeoFormatWarning
from ..geom.triangulate import triangulate_ngon
from ..models import (
    ATTRIBUTE_OWNER_KEYS,
    Attribute,
    AttributeOwner,
    AttributeType,
    Bounds,
    Document,
    FileInfo,
    PointGroup,
    PolyPrimitive,
    PrimitiveKind,
)
from .packing import decode_selection
from .tablemap import pairs_to_dict, token_kind


_STORAGE_TYPES = {
    "int32": AttributeType.INTEGER,
    "fpreal32": AttributeType.FLOAT,
    "fpreal64": AttributeType.FLOAT,
}

_DATE_PATTERNS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d")

_NON_FINITE = frozenset({"NaN", "Infinity", "-Infinity"})

# Curve primitives are recognised but not decoded.
_CURVE_TYPES = frozenset({PrimitiveKind.BEZIER_CURVE.value, PrimitiveKind.NURBS_CURVE.value})


def _warn(message: str) -> None:
    warnings.warn(message, GeoFormatWarning, stacklevel=3)


# ---------- scalar coercion ----------

def _mismatch(expected: str, key: str, token: Any) -> GeoFormatError:
    return GeoFormatError(
        f"Expecting property value of type '{expected}' for '{key}' but found '{token_kind(token)}' instead."
    )


def _as_str(token: Any, key: str) -> str:
    if isinstance(token, str):
        return token
    if isinstance(token, (int, float)) and not isinstance(token, bool):
        return str(token)
    raise _mismatch("str", key, token)


def _as_int(token: Any, key: str) -> int:
    if isinstance(token, bool):
        raise _mismatch("int", key, token)
    if isinstance(token, int):
        return token
    if isinstance(token, float) and token.is_integer():
        return int(token)
    if isinstance(token, str):
        try:
            return int(token.strip())
        except ValueError:
            pass
    raise _mismatch("int", key, token)


def _as_float(token: Any, key: str) -> float:
    if isinstance(token, (int, float)) and not isinstance(token, bool):
        return float(token)
    if isinstance(token, str):
        try:
            return float(token)
        except ValueError:
            pass
    raise _mismatch("float", key, token)


def _as_bool(token: Any, key: str) -> bool:
    if isinstance(token, bool):
        return token
    if isinstance(token, int) and token in (0, 1):
        return bool(token)
    raise _mismatch("bool", key, token)


def _require(record: Dict[str, Any], key: str, context: str) -> Any:
    if key not in record:
        raise GeoFormatError(f"Missing '{key}' in {context}.")
    return record[key]


def _flatten(rows: Any, dtype, key: str) -> np.ndarray:
    """Concatenate an array of value rows (or a flat array) into one 1-D array."""
    if not isinstance(rows, list):
        raise _mismatch("Array", key, rows)
    chunks = (row if isinstance(row, list) else [row] for row in rows)
    flat = list(itertools.chain.from_iterable(chunks))
    if np.dtype(dtype).kind == "f":
        # non-finite floats are written as strings
        flat = [float(v) if isinstance(v, str) and v in _NON_FINITE else v for v in flat]
    if any(isinstance(v, (bool, str, list, dict)) or v is None for v in flat):
        raise GeoFormatError(f"Non-numeric entry in '{key}' values.")
    if np.dtype(dtype).kind in "iu":
        fractional = [v for v in flat if isinstance(v, float) and not v.is_integer()]
        if fractional:
            raise GeoFormatError(f"Non-integral entry {fractional[0]!r} in integer '{key}' values.")
    try:
        return np.asarray(flat, dtype=dtype).ravel()
    except (TypeError, ValueError, OverflowError) as exc:
        raise GeoFormatError(f"Cannot read '{key}' values as {np.dtype(dtype).name}: {exc}") from exc


# ---------- info ----------

def parse_date(token: Any) -> datetime:
    """Parse the info date; unreadable or missing dates become ``datetime.min``."""
    if not isinstance(token, str):
        return datetime.min
    text = token.strip()
    for pattern in _DATE_PATTERNS:
        try:
            return datetime.strptime(text, pattern)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return datetime.min


def _parse_bounds(token: Any) -> Optional[Bounds]:
    if not isinstance(token, list) or len(token) != 6:
        return None
    try:
        v = [_as_float(t, "bounds") for t in token]
    except GeoFormatError:
        return None
    return Bounds(minimum=(v[0], v[1], v[2]), maximum=(v[3], v[4], v[5]))


def _optional_str(record: Dict[str, Any], key: str, default: Optional[str]) -> Optional[str]:
    token = record.get(key)
    if token is None:
        return default
    return _as_str(token, key)


def decode_info(token: Any) -> FileInfo:
    if token is None:
        raise GeoFormatError("Missing 'info' section in geo file.")
    if isinstance(token, dict):
        record = token
    else:
        record = pairs_to_dict(token, "info")
    return FileInfo(
        date=parse_date(record.get("date")),
        timetocook=_as_float(record["timetocook"], "timetocook") if record.get("timetocook") is not None else 0.0,
        software=_optional_str(record, "software", "Unknown"),
        artist=_optional_str(record, "artist", "Unknown"),
        hostname=_optional_str(record, "hostname", "Unknown"),
        time=_as_float(record["time"], "time") if record.get("time") is not None else 0.0,
        bounds=_parse_bounds(record.get("bounds")),
        primcount_summary=_optional_str(record, "primcount_summary", None),
        attribute_summary=_optional_str(record, "attribute_summary", ""),
        group_summary=_optional_str(record, "group_summary", None),
    )


# ---------- topology ----------

def decode_point_refs(token: Any) -> np.ndarray:
    if token is None:
        raise GeoFormatError("Missing 'topology' section in geo file.")
    topology = pairs_to_dict(token, "topology")
    pointref = pairs_to_dict(_require(topology, "pointref", "topology"), "pointref")
    indices = _require(pointref, "indices", "pointref")
    return _flatten(indices, np.int64, "indices")


# ---------- attributes ----------

def _numeric_values(body: Dict[str, Any], attr: Attribute) -> None:
    values = pairs_to_dict(_require(body, "values", f"attribute '{attr.name}'"), "values")
    if attr.type is AttributeType.FLOAT:
        size = _as_int(values["size"], "size") if "size" in values else attr.tuple_size
        key = "arrays" if size == 1 else "tuples"
        attr.float_values = _flatten(_require(values, key, f"attribute '{attr.name}' values"), np.float64, key)
    else:
        # Integer values always use "arrays", whatever the tuple size.
        attr.int_values = _flatten(_require(values, "arrays", f"attribute '{attr.name}' values"), np.int64, "arrays")


def _string_values(body: Dict[str, Any], attr: Attribute) -> None:
    context = f"attribute '{attr.name}'"
    table = _require(body, "strings", context)
    if not isinstance(table, list):
        raise _mismatch("Array", "strings", table)
    strings = [_as_str(s, "strings") for s in table]
    indices = pairs_to_dict(_require(body, "indices", context), "indices")
    idx = _flatten(_require(indices, "arrays", f"{context} indices"), np.int64, "arrays")
    attr.string_values = [strings[i] if 0 <= i < len(strings) else "" for i in idx.tolist()]


def decode_attribute(token: Any, owner: AttributeOwner) -> Optional[Attribute]:
    """One [header, body] attribute entry, or None if the entry is skipped."""
    if not isinstance(token, list) or len(token) < 2:
        _warn("Attribute entry has insufficient child blocks; skipped.")
        return None
    header = pairs_to_dict(token[0], "attribute header")
    body = pairs_to_dict(token[1], "attribute body")

    name = _as_str(_require(header, "name", "attribute header"), "name")
    category = _as_str(_require(header, "type", f"attribute '{name}' header"), "type")
    tuple_size = _as_int(_require(body, "size", f"attribute '{name}'"), "size")

    if category == "numeric":
        storage = _as_str(_require(body, "storage", f"attribute '{name}'"), "storage")
        attr_type = _STORAGE_TYPES.get(storage.lower())
        if attr_type is None:
            raise GeoFormatError(f"Unexpected attribute storage type '{storage}' for attribute '{name}'.")
        attr = Attribute(name=name, type=attr_type, owner=owner, tuple_size=tuple_size)
        _numeric_values(body, attr)
    elif category == "string":
        attr = Attribute(name=name, type=AttributeType.STRING, owner=owner, tuple_size=tuple_size)
        _string_values(body, attr)
    else:
        _warn(f"Unsupported attribute type '{category}' for attribute '{name}'; skipped.")
        return None
    return attr


def decode_attributes(token: Any) -> List[Attribute]:
    if token is None:
        raise GeoFormatError("Missing 'attributes' section in geo file.")
    sections = pairs_to_dict(token, "attributes")
    attributes: List[Attribute] = []
    for key, owner in ATTRIBUTE_OWNER_KEYS.items():
        entries = sections.get(key)
        if entries is None:
            continue
        if not isinstance(entries, list):
            raise _mismatch("Array", key, entries)
        for entry in entries:
            attr = decode_attribute(entry, owner)
            if attr is not None:
                attributes.append(attr)
    return attributes


# ---------- primitives ----------

def _decode_poly_run(body: Any, first_id: int) -> List[PolyPrimitive]:
    if not isinstance(body, list):
        _warn("Poly run body is not an array; skipped.")
        return []
    prims: List[PolyPrimitive] = []
    for prim_token in body:
        if not isinstance(prim_token, list) or not prim_token:
            _warn("Poly primitive without vertex block; skipped.")
            continue
        indices = _flatten(prim_token[0], np.int64, "vertex")
        prims.append(PolyPrimitive(
            id=first_id + len(prims),
            indices=indices,
            triangles=triangulate_ngon(indices),
        ))
    return prims


def decode_primitives(token: Any) -> List[PolyPrimitive]:
    """
    Poly primitives of every "run" entry. Bezier and NURBS runs are recognised
    but not decoded.
    """
    if token is None:
        _warn("Missing 'primitives' section; no primitives decoded.")
        return []
    if not isinstance(token, list):
        raise _mismatch("Array", "primitives", token)
    polys: List[PolyPrimitive] = []
    for entry in token:
        if not isinstance(entry, list) or len(entry) < 2:
            _warn("Primitive entry has insufficient child blocks; skipped.")
            continue
        header = pairs_to_dict(entry[0], "primitive header")
        prim_type = header.get("type")
        if prim_type is None:
            _warn("Primitive entry without 'type'; skipped.")
            continue
        if not isinstance(prim_type, str):
            _warn(f"Primitive type must be a String but found '{token_kind(prim_type)}'; skipped.")
            continue
        if prim_type in _CURVE_TYPES:
            continue
        if prim_type != "run":
            _warn(f"Unsupported primitive type '{prim_type}'; skipped.")
            continue
        run_type = header.get("runtype")
        if not isinstance(run_type, str):
            _warn(f"Primitive run type must be a String but found '{token_kind(run_type)}'; skipped.")
            continue
        if run_type == "Poly":
            polys.extend(_decode_poly_run(entry[1], first_id=len(polys)))
        elif run_type in _CURVE_TYPES:
            continue
        else:
            _warn(f"Unsupported primitive run type '{run_type}'; skipped.")
    return polys


# ---------- groups ----------

def decode_point_groups(token: Any) -> List[PointGroup]:
    if token is None:
        return []
    if not isinstance(token, list):
        raise _mismatch("Array", "pointgroups", token)
    groups: List[PointGroup] = []
    for entry in token:
        if not isinstance(entry, list) or len(entry) < 2:
            _warn("Point group entry has insufficient child blocks; skipped.")
            continue
        header = pairs_to_dict(entry[0], "point group header")
        body = pairs_to_dict(entry[1], "point group body")
        name = _as_str(_require(header, "name", "point group header"), "name")
        selection = pairs_to_dict(_require(body, "selection", f"point group '{name}'"), "selection")
        unordered = selection.get("unordered")
        if unordered is None:
            _warn(f"Point group '{name}' has no unordered selection; skipped.")
            continue
        encodings = pairs_to_dict(unordered, "unordered")
        ids = _selection_ids(name, encodings.items())
        if ids is not None:
            groups.append(PointGroup(name=name, ids=ids))
    return groups


def _selection_ids(name: str, encodings: Iterable) -> Optional[List[int]]:
    for encoding, values in encodings:
        if encoding in ("i8", "boolRLE"):
            if not isinstance(values, list):
                raise _mismatch("Array", encoding, values)
            return decode_selection(encoding, values)
    _warn(f"Point group '{name}' uses an unsupported selection encoding; skipped.")
    return None


# ---------- document ----------

def decode_document(root: Any, source: str = "<memory>") -> Document:
    """Decode a parsed geo tree into a new Document. ``source`` only labels errors."""
    if not isinstance(root, list):
        raise GeoFormatError(
            f"Unexpected root type in geo json {source}: expected 'Array' but found '{token_kind(root)}'."
        )
    record = pairs_to_dict(root, "<root>")

    file_version = _as_str(_require(record, "fileversion", "geo file"), "fileversion")
    has_index = _as_bool(record["hasindex"], "hasindex") if "hasindex" in record else False
    point_count = _as_int(_require(record, "pointcount", "geo file"), "pointcount")
    vertex_count = _as_int(_require(record, "vertexcount", "geo file"), "vertexcount")
    prim_count = _as_int(_require(record, "primitivecount", "geo file"), "primitivecount")

    info = decode_info(record.get("info"))
    point_refs = decode_point_refs(record.get("topology"))
    attributes = decode_attributes(record.get("attributes"))
    polys = decode_primitives(record.get("primitives"))
    point_groups = decode_point_groups(record.get("pointgroups"))

    return Document(
        file_version=file_version,
        has_index=has_index,
        point_count=point_count,
        vertex_count=vertex_count,
        prim_count=prim_count,
        info=info,
        point_refs=point_refs,
        attributes=attributes,
        poly_primitives=polys,
        point_groups=point_groups,
    )


__all__ = [
    "decode_document",
    "decode_info",
    "decode_point_refs",
    "decode_attribute",
    "decode_attributes",
    "decode_primitives",
    "decode_point_groups",
    "parse_date",
]
