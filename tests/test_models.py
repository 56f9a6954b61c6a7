from datetime import datetime

import numpy as np
import pytest

from houdinigeo.errors import GeoFormatError
from houdinigeo.models import (
    AttributeOwner,
    AttributeType,
    Document,
    GroupKind,
    PointGroup,
    PolyPrimitive,
    PrimitiveGroup,
    points_of,
)


def _make_triangle_doc() -> Document:
    doc = Document()
    doc.point_count = 3
    doc.vertex_count = 3
    doc.prim_count = 1
    doc.point_refs = np.array([2, 1, 0], dtype=np.int64)
    doc.poly_primitives = [PolyPrimitive(id=0, indices=np.array([0, 1, 2]), triangles=np.array([0, 1, 2]))]
    return doc


def test_create_stamps_info():
    doc = Document.create()
    assert doc.file_version == "18.5.408"
    assert doc.info.date > datetime(2000, 1, 1)
    assert doc.info.software.startswith("Python")
    assert doc.info.hostname


def test_add_attribute_fills_defaults():
    doc = _make_triangle_doc()
    cd = doc.add_attribute("Cd", AttributeType.FLOAT, 3, AttributeOwner.POINT)
    assert cd.float_values.shape == (9,)
    tag = doc.add_attribute("tag", AttributeType.STRING, 1, AttributeOwner.PRIMITIVE)
    assert tag.string_values == [""]
    flag = doc.add_attribute("flag", AttributeType.INTEGER, 1, AttributeOwner.DETAIL)
    np.testing.assert_array_equal(flag.int_values, [0])
    doc.validate()


def test_add_attribute_rejects_zero_tuple_size():
    with pytest.raises(ValueError):
        Document().add_attribute("x", AttributeType.FLOAT, 0, AttributeOwner.POINT)


def test_get_attribute_filters():
    doc = _make_triangle_doc()
    doc.add_attribute("v", AttributeType.FLOAT, 1, AttributeOwner.POINT)
    doc.add_attribute("v", AttributeType.INTEGER, 1, AttributeOwner.VERTEX)
    assert doc.get_attribute("v").owner is AttributeOwner.POINT
    assert doc.get_attribute("v", type=AttributeType.INTEGER).owner is AttributeOwner.VERTEX
    assert doc.get_attribute("v", owner=AttributeOwner.DETAIL) is None
    assert doc.get_or_create_attribute("v", AttributeType.FLOAT, 1, AttributeOwner.POINT) is doc.attributes[0]


def test_attribute_tuples():
    doc = _make_triangle_doc()
    p = doc.add_attribute("P", AttributeType.FLOAT, 3, AttributeOwner.POINT)
    p.float_values = np.arange(9, dtype=np.float64)
    assert p.element_count == 3
    np.testing.assert_array_equal(p.tuples()[1], [3.0, 4.0, 5.0])


def test_groups_are_created_once():
    doc = Document()
    g = doc.get_or_create_group("sel", GroupKind.POINTS)
    assert isinstance(g, PointGroup)
    assert doc.get_or_create_group("sel", GroupKind.POINTS) is g
    assert isinstance(doc.get_or_create_group("sel", GroupKind.PRIMITIVES), PrimitiveGroup)
    assert doc.get_group("sel", GroupKind.EDGES) is None


def test_clear():
    doc = _make_triangle_doc()
    doc.add_attribute("P", AttributeType.FLOAT, 3, AttributeOwner.POINT)
    doc.get_or_create_group("sel", GroupKind.POINTS)
    doc.clear()
    assert (doc.point_count, doc.vertex_count, doc.prim_count) == (0, 0, 0)
    assert doc.point_refs.size == 0
    assert doc.attributes == [] and doc.primitives == [] and doc.point_groups == []
    doc.validate()


def test_points_of():
    np.testing.assert_array_equal(points_of(_make_triangle_doc(), [0, 2]), [2, 0])


@pytest.mark.parametrize(
    "breaker",
    [
        lambda d: setattr(d, "point_refs", np.array([0, 1], dtype=np.int64)),
        lambda d: setattr(d, "point_refs", np.array([0, 1, 3], dtype=np.int64)),
        lambda d: setattr(d.poly_primitives[0], "indices", np.array([0, 1, 5])),
        lambda d: d.add_attribute("w", AttributeType.FLOAT, 1, AttributeOwner.POINT).append_values([1.0]),
    ],
)
def test_validate_catches_broken_invariants(breaker):
    doc = _make_triangle_doc()
    doc.validate()
    breaker(doc)
    with pytest.raises(GeoFormatError):
        doc.validate()
