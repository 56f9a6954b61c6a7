"""
Document -> geo tree.

Builds the nested structure that :mod:`houdinigeo.encoding.jsonwriter` renders:
plain dicts for the format's key/value arrays, :class:`JsonObject` where the file
holds a real JSON object, and lists for everything else.
"""
from __future__ import annotations

from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from ..models import (
    ATTRIBUTE_OWNER_KEYS,
    Attribute,
    AttributeType,
    Document,
    FileInfo,
    NURBSCurvePrimitive,
    PointGroup,
)
from .jsonwriter import JsonObject
from .packing import break_into_tuples, dedupe_strings, encode_selection


DATE_FORMAT = "%Y-%m-{day} %H:%M:%S"

STORAGE_INT = "int32"
STORAGE_FLOAT = "fpreal64"

# Reserved attribute names carry a type hint for the reading application.
ATTRIBUTE_OPTIONS: Mapping[str, str] = MappingProxyType({
    "P": "point",
    "N": "normal",
    "Cd": "color",
})


def format_date(value: datetime) -> str:
    """``YYYY-MM-D HH:MM:SS`` with an unpadded day, as the format's own writers emit it."""
    return value.strftime(DATE_FORMAT.format(day=value.day))


def storage_string(attr_type: AttributeType) -> str:
    if attr_type is AttributeType.INTEGER:
        return STORAGE_INT
    if attr_type is AttributeType.FLOAT:
        return STORAGE_FLOAT
    return "string"


def category_string(attr_type: AttributeType) -> str:
    return "string" if attr_type is AttributeType.STRING else "numeric"


def _info_object(info: FileInfo, now: datetime) -> JsonObject:
    return JsonObject([
        ("date", format_date(now)),
        ("timetocook", float(info.timetocook)),
        ("software", info.software),
        ("artist", info.artist),
        ("hostname", info.hostname),
        ("time", float(info.time)),
        ("bounds", None if info.bounds is None else info.bounds.as_list()),
        ("primcount_summary", info.primcount_summary),
        ("attribute_summary", info.attribute_summary),
        ("group_summary", info.group_summary),
    ])


def _attribute_options(name: str) -> JsonObject:
    hint = ATTRIBUTE_OPTIONS.get(name)
    if hint is None:
        return JsonObject()
    return JsonObject(type=JsonObject(type="string", value=hint))


def _attribute_header(attr: Attribute) -> Dict[str, Any]:
    return {
        "scope": "public",
        "type": category_string(attr.type),
        "name": attr.name,
        "options": _attribute_options(attr.name),
    }


def _numeric_body(attr: Attribute) -> Dict[str, Any]:
    storage = storage_string(attr.type)
    size = int(attr.tuple_size)
    default = 0.0 if attr.type is AttributeType.FLOAT else 0
    values: Dict[str, Any] = {"size": size, "storage": storage}
    if attr.type is AttributeType.FLOAT:
        key = "arrays" if size == 1 else "tuples"
        values[key] = break_into_tuples(np.asarray(attr.float_values, dtype=np.float64), size)
    else:
        values["arrays"] = break_into_tuples(np.asarray(attr.int_values, dtype=np.int64), size)
    return {
        "size": size,
        "storage": storage,
        "defaults": {"size": 1, "storage": storage, "values": [default]},
        "values": values,
    }


def _string_body(attr: Attribute) -> Dict[str, Any]:
    # String indices use the integer storage type.
    strings, indices = dedupe_strings(attr.string_values)
    return {
        "size": int(attr.tuple_size),
        "storage": STORAGE_INT,
        "strings": strings,
        "indices": {
            "size": int(attr.tuple_size),
            "storage": STORAGE_INT,
            "arrays": [indices],
        },
    }


def encode_attribute(attr: Attribute) -> List[Dict[str, Any]]:
    """[header, body] entry of one attribute."""
    body = _string_body(attr) if attr.type is AttributeType.STRING else _numeric_body(attr)
    return [_attribute_header(attr), body]


def _attributes_section(document: Document) -> Dict[str, Any]:
    section: Dict[str, Any] = {}
    for key, owner in ATTRIBUTE_OWNER_KEYS.items():
        entries = [encode_attribute(a) for a in document.attributes if a.owner is owner]
        if entries:
            section[key] = entries
    return section


def _poly_run(document: Document) -> List[Any]:
    header = {
        "type": "run",
        "runtype": "Poly",
        "varyingfields": ["vertex"],
        "uniformfields": JsonObject(closed=True),
    }
    body = [[np.asarray(p.indices, dtype=np.int64).tolist()] for p in document.poly_primitives]
    return [header, body]


def _nurbs_entry(prim: NURBSCurvePrimitive) -> List[Any]:
    body = {
        "vertex": np.asarray(prim.indices, dtype=np.int64).tolist(),
        "closed": False,
        "basis": {
            "type": "NURBS",
            "order": int(prim.order),
            "endinterpolation": bool(prim.end_interpolation),
            "knots": np.asarray(prim.knots).tolist(),
        },
    }
    return [{"type": prim.kind.value}, body]


def _primitives_section(document: Document) -> List[Any]:
    entries: List[Any] = []
    if document.poly_primitives:
        entries.append(_poly_run(document))
    entries.extend(_nurbs_entry(p) for p in document.nurbs_primitives)
    return entries


def _point_group_entry(group: PointGroup, point_count: int) -> List[Any]:
    encoding, values = encode_selection(group.ids, point_count)
    return [
        {"name": group.name},
        {"selection": {"unordered": {encoding: values}}},
    ]


def build_tree(document: Document, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Assemble the full file tree for ``document``.

    The info block is stamped with ``now`` (default: current time) rather than
    the document's own date. Raises GeoFormatError if the document breaks one
    of its invariants.
    """
    document.validate()
    stamp = datetime.now() if now is None else now
    return {
        "fileversion": document.file_version,
        "hasindex": bool(document.has_index),
        "pointcount": int(document.point_count),
        "vertexcount": int(document.vertex_count),
        "primitivecount": int(document.prim_count),
        "info": _info_object(document.info, stamp),
        "topology": {
            "pointref": {
                "indices": np.asarray(document.point_refs, dtype=np.int64).tolist(),
            },
        },
        "attributes": _attributes_section(document),
        "primitives": _primitives_section(document),
        "pointgroups": [_point_group_entry(g, document.point_count) for g in document.point_groups],
    }


__all__ = [
    "ATTRIBUTE_OPTIONS",
    "DATE_FORMAT",
    "build_tree",
    "encode_attribute",
    "format_date",
    "storage_string",
    "category_string",
]
