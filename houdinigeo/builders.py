"""
Producers: grow a Document from plain Python point and spline records.

A point record is a mapping of attribute name -> value, e.g.
    {"P": (0.0, 1.0, 2.0), "Cd": (1.0, 0.0, 0.0), "id": 7, "name": "a", "groups": ["tips"]}

Attribute type and tuple size are inferred from the first value seen for a
name: bool/int -> integer, float -> float, str -> string, and a sequence of
those -> the same type with the sequence length as tuple size.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .geom.curves import nurbs_knots
from .models import (
    Attribute,
    AttributeOwner,
    AttributeType,
    Document,
    GroupKind,
    NURBSCurvePrimitive,
)


def infer_attribute_type(value: Any) -> Tuple[AttributeType, int]:
    """(type, tuple_size) of an attribute able to hold ``value``."""
    if isinstance(value, (bool, np.bool_, int, np.integer)):
        return AttributeType.INTEGER, 1
    if isinstance(value, (float, np.floating)):
        return AttributeType.FLOAT, 1
    if isinstance(value, str):
        return AttributeType.STRING, 1
    if isinstance(value, (Sequence, np.ndarray)):
        items = list(np.asarray(value).ravel().tolist()) if isinstance(value, np.ndarray) else list(value)
        if not items:
            raise ValueError("Cannot infer an attribute type from an empty sequence.")
        if all(isinstance(v, str) for v in items):
            return AttributeType.STRING, len(items)
        if all(isinstance(v, (bool, np.bool_, int, np.integer)) for v in items):
            return AttributeType.INTEGER, len(items)
        if all(isinstance(v, (bool, np.bool_, int, np.integer, float, np.floating)) for v in items):
            return AttributeType.FLOAT, len(items)
    raise TypeError(f"Unsupported attribute value of type {type(value).__name__}: {value!r}")


def _flat_value(attr: Attribute, value: Any) -> List[Any]:
    if isinstance(value, str) or np.ndim(value) == 0:
        flat = [value]
    else:
        flat = list(np.asarray(value, dtype=object).ravel())
    if len(flat) != attr.tuple_size:
        raise ValueError(
            f"Value {value!r} has {len(flat)} components; attribute '{attr.name}' has tuple size {attr.tuple_size}."
        )
    if attr.type is AttributeType.INTEGER:
        return [int(v) for v in flat]
    if attr.type is AttributeType.FLOAT:
        return [float(v) for v in flat]
    return [str(v) for v in flat]


def _resolve_attribute(document: Document, name: str, value: Any, owner: AttributeOwner) -> Attribute:
    """
    The document's attribute for ``name`` or, when there is none yet, a detached
    attribute of the inferred type. Nothing is added to ``document``.
    """
    attr_type, size = infer_attribute_type(value)
    existing = document.get_attribute(name, owner=owner)
    if existing is None:
        return Attribute(name=name, type=attr_type, owner=owner, tuple_size=size)
    if existing.type is not attr_type and not (
        existing.type is AttributeType.FLOAT and attr_type is AttributeType.INTEGER
    ):
        raise ValueError(
            f"{owner.value} attribute '{name}' is {existing.type.value}; cannot store {attr_type.value} values."
        )
    return existing


def _attach(document: Document, attr: Attribute) -> Attribute:
    if any(a is attr for a in document.attributes):
        return attr
    return document.add_attribute(attr.name, attr.type, attr.tuple_size, attr.owner)


def _detail_values(document: Document, values: Mapping[str, Any]) -> List[Tuple[Attribute, List[Any]]]:
    plan = []
    for name, value in values.items():
        attr = _resolve_attribute(document, name, value, AttributeOwner.DETAIL)
        plan.append((attr, _flat_value(attr, value)))
    return plan


def _apply_detail(document: Document, plan: List[Tuple[Attribute, List[Any]]]) -> None:
    for template, flat in plan:
        attr = _attach(document, template)
        if attr.type is AttributeType.FLOAT:
            attr.float_values = np.asarray(flat, dtype=np.float64)
        elif attr.type is AttributeType.INTEGER:
            attr.int_values = np.asarray(flat, dtype=np.int64)
        else:
            attr.string_values = flat


def set_detail(document: Document, values: Mapping[str, Any]) -> None:
    """Set (not append) the single value of each named Detail attribute."""
    _apply_detail(document, _detail_values(document, values))


def add_points(
    document: Document,
    points: Iterable[Mapping[str, Any]],
    *,
    detail: Optional[Mapping[str, Any]] = None,
    group_key: str = "groups",
) -> List[int]:
    """
    Append points to ``document`` and return their point ids.

    Every value is checked before the document changes, so a bad record leaves
    ``document`` as it was. Attributes are created before the point count grows
    so that points already in the document receive default values. Point
    attributes that the new records do not mention are padded with defaults.
    The ``group_key`` entry of a record lists the names of the point groups the
    point joins.
    """
    records = list(points)
    first = int(document.point_count)

    point_attrs: Dict[str, Attribute] = {}
    for record in records:
        for name, value in record.items():
            if name == group_key or name in point_attrs:
                continue
            point_attrs[name] = _resolve_attribute(document, name, value, AttributeOwner.POINT)

    # per attribute: one flat value list per record, None where the record is silent
    columns: Dict[str, List[Optional[List[Any]]]] = {
        name: [_flat_value(attr, record[name]) if name in record else None for record in records]
        for name, attr in point_attrs.items()
    }
    detail_plan = _detail_values(document, detail) if detail else []

    untouched = [a for a in document.attributes if a.owner is AttributeOwner.POINT and a.name not in point_attrs]
    for name in point_attrs:
        point_attrs[name] = _attach(document, point_attrs[name])

    document.point_count = first + len(records)

    for name, attr in point_attrs.items():
        for flat in columns[name]:
            if flat is None:
                attr.add_default_values(1)
            else:
                attr.append_values(flat)
    for attr in untouched:
        attr.add_default_values(len(records))

    ids = list(range(first, first + len(records)))
    for pid, record in zip(ids, records):
        names = record.get(group_key) or ()
        if isinstance(names, str):
            names = (names,)
        for group_name in names:
            group = document.get_or_create_group(str(group_name), GroupKind.POINTS)
            if pid not in group.ids:
                group.ids.append(pid)

    _apply_detail(document, detail_plan)
    return ids


def _pad_owner(document: Document, owner: AttributeOwner, count: int) -> None:
    for attr in document.attributes:
        if attr.owner is owner:
            attr.add_default_values(count)


def add_splines(
    document: Document,
    splines: Iterable[Sequence[Mapping[str, Any]]],
    *,
    order: int = 4,
) -> List[NURBSCurvePrimitive]:
    """
    Append one NURBS curve primitive per spline (a sequence of point records).

    Every point gets one vertex; vertices are created in reverse point order and
    the primitive lists them in creation order. Knots come from
    :func:`houdinigeo.geom.curves.nurbs_knots`.
    """
    created: List[NURBSCurvePrimitive] = []
    for spline in splines:
        records = list(spline)
        n = len(records)
        point_ids = add_points(document, records)

        first_vertex = int(document.vertex_count)
        refs = np.asarray(point_ids[::-1], dtype=np.int64)
        document.point_refs = np.concatenate([np.asarray(document.point_refs, dtype=np.int64), refs])
        document.vertex_count = first_vertex + n
        _pad_owner(document, AttributeOwner.VERTEX, n)

        prim = NURBSCurvePrimitive(
            id=int(document.prim_count),
            indices=np.arange(first_vertex, first_vertex + n, dtype=np.int64),
            order=int(order),
            knots=nurbs_knots(n, order),
            end_interpolation=True,
        )
        document.nurbs_primitives.append(prim)
        document.prim_count += 1
        _pad_owner(document, AttributeOwner.PRIMITIVE, 1)
        created.append(prim)
    return created


def get_points(document: Document) -> List[Dict[str, Any]]:
    """One dict per point holding its Point attribute values (scalars for tuple size 1)."""
    out: List[Dict[str, Any]] = [{} for _ in range(int(document.point_count))]
    for attr in document.attributes:
        if attr.owner is not AttributeOwner.POINT:
            continue
        rows = attr.tuples()
        for i in range(min(len(rows), len(out))):
            row = tuple(rows[i].tolist()) if isinstance(rows, np.ndarray) else tuple(rows[i])
            out[i][attr.name] = row[0] if attr.tuple_size == 1 else row
    return out


__all__ = ["infer_attribute_type", "add_points", "add_splines", "set_detail", "get_points"]
