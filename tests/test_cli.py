import numpy as np
import pytest

from houdinigeo.builders import add_points
from houdinigeo.cli.main import build_parser, main
from houdinigeo.encoding.geoio import load_geo, save_geo
from houdinigeo.models import Document


def _write_sample(tmp_path):
    doc = Document()
    add_points(doc, [{"P": (0.0, 0.0, 0.0), "groups": ["a"]}, {"P": (1.0, 2.0, 3.0)}])
    return save_geo(doc, tmp_path / "sample.geo")


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_info(tmp_path, capsys):
    path = _write_sample(tmp_path)
    main(["info", "--geo", str(path)])
    out = capsys.readouterr().out
    assert out.startswith("[info]")
    assert "points       2" in out
    assert "P:float[3]" in out
    assert "pointgroup   a (1 points)" in out


def test_reformat(tmp_path, capsys):
    path = _write_sample(tmp_path)
    out_path = tmp_path / "out" / "copy.geo"
    main(["reformat", "--geo", str(path), "--out", str(out_path)])
    assert f"[reformat] wrote {out_path}" in capsys.readouterr().out
    doc = load_geo(out_path)
    np.testing.assert_allclose(doc.get_attribute("P").tuples()[1], [1.0, 2.0, 3.0])


def test_stl_commands(tmp_path, capsys):
    pytest.importorskip("trimesh")
    from houdinigeo.io import document_from_mesh, save_stl
    from houdinigeo.models import Mesh3D

    mesh = Mesh3D(
        vertices=np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]),
        faces=np.array([[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]], dtype=np.int32),
    )
    stl_in = tmp_path / "in.stl"
    save_stl(document_from_mesh(mesh), stl_in)

    geo = tmp_path / "mesh.geo"
    main(["import-stl", "--stl", str(stl_in), "--geo", str(geo)])
    assert load_geo(geo).prim_count == 4

    stl_out = tmp_path / "back" / "out.stl"
    main(["export-stl", "--geo", str(geo), "--stl", str(stl_out), "--reverse-winding"])
    out = capsys.readouterr().out
    assert "[import-stl] wrote" in out
    assert f"[export-stl] wrote {stl_out}" in out
    assert stl_out.exists()
