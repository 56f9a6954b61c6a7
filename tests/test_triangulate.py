import numpy as np

from houdinigeo.geom.triangulate import triangulate_ngon


def test_small_polygons_unchanged():
    np.testing.assert_array_equal(triangulate_ngon([4, 5, 6]), [4, 5, 6])
    np.testing.assert_array_equal(triangulate_ngon([1, 2]), [1, 2])
    assert triangulate_ngon([]).size == 0


def test_quad_fan():
    np.testing.assert_array_equal(triangulate_ngon([10, 11, 12, 13]), [10, 11, 12, 10, 12, 13])


def test_ngon_counts_and_anchor():
    for n in range(4, 12):
        idx = np.arange(100, 100 + n)
        tris = triangulate_ngon(idx).reshape(-1, 3)
        assert tris.shape == (n - 2, 3)
        assert (tris[:, 0] == 100).all()
        # consecutive edges walk the polygon boundary
        np.testing.assert_array_equal(tris[:, 1], idx[1:-1])
        np.testing.assert_array_equal(tris[:, 2], idx[2:])
