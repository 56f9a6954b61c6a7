import numpy as np
import pytest

pytest.importorskip("trimesh")

from houdinigeo.encoding.geoio import dumps_geo, loads_geo
from houdinigeo.geom.triangulate import triangulate_ngon
from houdinigeo.io import document_from_mesh, document_to_mesh, load_stl, save_stl
from houdinigeo.models import AttributeOwner, Mesh3D, PolyPrimitive


def _make_tetra() -> Mesh3D:
    v = np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        dtype=np.float64,
    )
    f = np.array([[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]], dtype=np.int32)
    return Mesh3D(vertices=v, faces=f)


def test_document_from_mesh_layout():
    doc = document_from_mesh(_make_tetra())
    assert (doc.point_count, doc.vertex_count, doc.prim_count) == (4, 12, 4)
    np.testing.assert_array_equal(doc.point_refs[:3], [0, 2, 1])
    assert doc.get_attribute("P", owner=AttributeOwner.POINT).tuple_size == 3
    np.testing.assert_array_equal(doc.poly_primitives[1].indices, [3, 4, 5])
    doc.validate()


def test_mesh_round_trip_through_geo_text():
    mesh = _make_tetra()
    back = document_to_mesh(loads_geo(dumps_geo(document_from_mesh(mesh))))
    np.testing.assert_allclose(back.vertices, mesh.vertices)
    np.testing.assert_array_equal(back.faces, mesh.faces)


def test_reverse_winding():
    mesh = _make_tetra()
    flipped = document_to_mesh(document_from_mesh(mesh), reverse_winding=True)
    np.testing.assert_array_equal(flipped.faces, mesh.faces[:, ::-1])


def test_quads_are_split():
    doc = document_from_mesh(Mesh3D(vertices=np.zeros((4, 3)), faces=np.zeros((0, 3), dtype=np.int32)))
    doc.point_refs = np.arange(4, dtype=np.int64)
    doc.vertex_count = 4
    doc.prim_count = 1
    doc.poly_primitives = [PolyPrimitive(id=0, indices=np.arange(4), triangles=triangulate_ngon(np.arange(4)))]
    mesh = document_to_mesh(doc)
    np.testing.assert_array_equal(mesh.faces, [[0, 1, 2], [0, 2, 3]])


def test_stl_round_trip(tmp_path):
    path = tmp_path / "tetra.stl"
    save_stl(document_from_mesh(_make_tetra()), path)
    assert path.exists()
    doc = load_stl(path)
    assert doc.point_count == 4
    assert doc.prim_count == 4
    mesh = document_to_mesh(doc)
    assert mesh.faces.shape == (4, 3)
    assert np.isclose(np.abs(mesh.vertices).sum(), 3.0)
