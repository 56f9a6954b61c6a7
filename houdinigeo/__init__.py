"""
houdinigeo: read and write Houdini ASCII .geo geometry files.

This package exposes:
- The document model (Document, Attribute, primitives, groups)
- load_geo / save_geo and their in-memory variants
- Producers for points and NURBS splines
"""

from .errors import GeoFormatError, GeoFormatWarning, GeoParseError
from .models import (
    Attribute,
    AttributeOwner,
    AttributeType,
    Bounds,
    BezierCurvePrimitive,
    Document,
    EdgeGroup,
    FileInfo,
    GroupKind,
    Mesh3D,
    NURBSCurvePrimitive,
    PointGroup,
    PolyPrimitive,
    PrimitiveGroup,
    PrimitiveKind,
)
from .encoding.geoio import dumps_geo, load_geo, load_geo_into, loads_geo, save_geo
from .builders import add_points, add_splines, get_points

__all__ = [
    "GeoFormatError",
    "GeoFormatWarning",
    "GeoParseError",
    "Attribute",
    "AttributeOwner",
    "AttributeType",
    "Bounds",
    "BezierCurvePrimitive",
    "Document",
    "EdgeGroup",
    "FileInfo",
    "GroupKind",
    "Mesh3D",
    "NURBSCurvePrimitive",
    "PointGroup",
    "PolyPrimitive",
    "PrimitiveGroup",
    "PrimitiveKind",
    "dumps_geo",
    "load_geo",
    "load_geo_into",
    "loads_geo",
    "save_geo",
    "add_points",
    "add_splines",
    "get_points",
]

__version__ = "0.1.0"
