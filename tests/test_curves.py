import numpy as np
import pytest

from houdinigeo.builders import add_splines
from houdinigeo.geom.curves import control_points, nurbs_knots, sample_curve
from houdinigeo.models import Document


@pytest.mark.parametrize(
    "count, expected",
    [
        (4, [0, 0, 0, 0, 1, 1, 1, 1]),
        (7, [0, 0, 0, 0, 1, 1, 1, 2, 2, 2, 2]),
        (10, [0, 0, 0, 0, 1, 1, 1, 2, 2, 2, 3, 3, 3, 3]),
    ],
)
def test_nurbs_knots_cubic(count, expected):
    knots = nurbs_knots(count, 4)
    np.testing.assert_array_equal(knots, expected)
    assert knots.size == count + 4


def test_nurbs_knots_quadratic():
    np.testing.assert_array_equal(nurbs_knots(5, 3), [0, 0, 0, 1, 1, 2, 2, 2])


def test_nurbs_knots_rejects_low_order():
    with pytest.raises(ValueError):
        nurbs_knots(4, 1)


def _make_line_spline(count=4):
    doc = Document()
    (prim,) = add_splines(doc, [[{"P": (float(i), 0.0, 0.0)} for i in range(count)]])
    return doc, prim


def test_control_points_follow_vertex_order():
    doc, prim = _make_line_spline()
    np.testing.assert_allclose(control_points(doc, prim)[:, 0], [3.0, 2.0, 1.0, 0.0])


def test_sample_curve_interpolates_ends():
    doc, prim = _make_line_spline(7)
    pts = sample_curve(doc, prim, samples=33)
    assert pts.shape == (33, 3)
    assert np.isfinite(pts).all()
    np.testing.assert_allclose(pts[0], [6.0, 0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(pts[-1], [0.0, 0.0, 0.0], atol=1e-12)


def test_sample_straight_bezier_is_linear():
    doc, prim = _make_line_spline(4)
    pts = sample_curve(doc, prim, samples=5)
    np.testing.assert_allclose(pts[:, 0], [3.0, 2.25, 1.5, 0.75, 0.0], atol=1e-12)
    np.testing.assert_allclose(pts[:, 1:], 0.0)


def test_sample_rejects_bad_knot_count():
    doc, prim = _make_line_spline(5)
    with pytest.raises(ValueError, match="knots"):
        sample_curve(doc, prim)


def test_sample_requires_positions():
    doc, prim = _make_line_spline()
    doc.attributes = []
    with pytest.raises(ValueError, match="'P'"):
        sample_curve(doc, prim)
