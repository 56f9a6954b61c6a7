"""
Curve primitives: clamped knot vectors and sampling.

Curves are evaluated as non-rational B-splines (all weights 1) of degree
``order - 1`` over the positions of the points their vertices reference.
"""
from __future__ import annotations

from typing import Union

import numpy as np
from scipy.interpolate import BSpline

from ..models import (
    POSITION_ATTRIBUTE,
    AttributeOwner,
    AttributeType,
    BezierCurvePrimitive,
    Document,
    NURBSCurvePrimitive,
    points_of,
)


def nurbs_knots(count: int, order: int = 4) -> np.ndarray:
    """
    Clamped knot vector for ``count`` control points.

    Distinct knots are 0, 1, ..., m-1 with m = 2 + (count - order) // (order - 1);
    the two end knots repeat ``order`` times, interior knots ``order - 1`` times.
    The vector is valid (length count + order) when count - order is a multiple
    of order - 1, which holds for piecewise cubic Bezier control polygons.
    """
    order = int(order)
    if order < 2:
        raise ValueError(f"Curve order must be >= 2, got {order}.")
    distinct = 2 + max(int(count) - order, 0) // (order - 1)
    mult = np.full(distinct, order - 1, dtype=np.int64)
    mult[0] = mult[-1] = order
    return np.repeat(np.arange(distinct, dtype=np.int64), mult)


def control_points(document: Document, primitive: Union[NURBSCurvePrimitive, BezierCurvePrimitive]) -> np.ndarray:
    """(n,3) positions of the points referenced by the primitive's vertices, in vertex order."""
    pos = document.get_attribute(POSITION_ATTRIBUTE, type=AttributeType.FLOAT, owner=AttributeOwner.POINT)
    if pos is None:
        raise ValueError("Document has no point attribute 'P'.")
    pts = points_of(document, primitive.indices)
    return pos.tuples()[pts, :3].astype(np.float64)


def sample_curve(
    document: Document,
    primitive: Union[NURBSCurvePrimitive, BezierCurvePrimitive],
    samples: int = 64,
) -> np.ndarray:
    """Evaluate a curve primitive at ``samples`` uniformly spaced parameters. Returns (samples,3)."""
    ctrl = control_points(document, primitive)
    order = int(primitive.order)
    knots = np.asarray(primitive.knots, dtype=np.float64)
    if knots.size != ctrl.shape[0] + order:
        raise ValueError(
            f"Curve primitive {primitive.id}: {knots.size} knots for {ctrl.shape[0]} control points "
            f"of order {order}; expected {ctrl.shape[0] + order}."
        )
    k = order - 1
    spline = BSpline(knots, ctrl, k, extrapolate=False)
    t = np.linspace(knots[k], knots[-order], int(samples))
    return np.asarray(spline(t), dtype=np.float64)


__all__ = ["nurbs_knots", "control_points", "sample_curve"]
