"""
Naive polygon triangulation.

A fan anchored at the first vertex: (v0, v1, v2), (v0, v2, v3), ... which is
exact for convex planar polygons. Concave polygons still get n-2 triangles over
the same vertices with the same winding, but some of them may overlap.
"""
from __future__ import annotations

from typing import Sequence

import numpy as np


def triangulate_ngon(indices: Sequence[int]) -> np.ndarray:
    """
    Return a flat triangle index buffer (length 3*(n-2)) for an n-gon.
    Polygons with three or fewer vertices are returned unchanged.
    """
    idx = np.asarray(indices, dtype=np.int64).ravel()
    n = idx.size
    if n <= 3:
        return idx.copy()
    offsets = np.arange(1, n - 1)
    tris = np.empty((n - 2, 3), dtype=np.int64)
    tris[:, 0] = idx[0]
    tris[:, 1] = idx[offsets]
    tris[:, 2] = idx[offsets + 1]
    return tris.reshape(-1)


__all__ = ["triangulate_ngon"]
