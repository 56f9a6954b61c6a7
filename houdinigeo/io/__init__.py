from __future__ import annotations

from pathlib import Path

import numpy as np
import trimesh
from trimesh import Trimesh

from ..geom.triangulate import triangulate_ngon
from ..models import (
    POSITION_ATTRIBUTE,
    AttributeOwner,
    AttributeType,
    Document,
    Mesh3D,
    PolyPrimitive,
)


# ---------- Internal utilities ----------

def _to_trimesh(mesh: Mesh3D) -> Trimesh:
    """Convert Mesh3D -> trimesh.Trimesh without additional processing."""
    v = np.asarray(mesh.vertices, dtype=np.float64)
    f = np.asarray(mesh.faces, dtype=np.int64)
    return trimesh.Trimesh(vertices=v, faces=f, process=False)


def _from_trimesh(tm: Trimesh, units: str = "mm") -> Mesh3D:
    """Convert trimesh.Trimesh -> Mesh3D."""
    tm.remove_unreferenced_vertices()
    return Mesh3D(vertices=np.asarray(tm.vertices, dtype=np.float64), faces=np.asarray(tm.faces, dtype=np.int32), units=units)


# ---------- Mesh <-> Document ----------

def document_from_mesh(mesh: Mesh3D) -> Document:
    """
    Build a Document from a triangle mesh:
      - one point per mesh vertex, positions in the Float[3] point attribute "P"
      - one vertex per face corner
      - one closed Poly primitive per face
    """
    v = np.asarray(mesh.vertices, dtype=np.float64).reshape(-1, 3)
    f = np.asarray(mesh.faces, dtype=np.int64).reshape(-1, 3)

    doc = Document.create()
    doc.point_count = v.shape[0]
    doc.vertex_count = f.size
    doc.prim_count = f.shape[0]
    doc.point_refs = f.reshape(-1).copy()

    pos = doc.add_attribute(POSITION_ATTRIBUTE, AttributeType.FLOAT, 3, AttributeOwner.POINT)
    pos.float_values = v.reshape(-1).copy()

    corners = np.arange(f.size, dtype=np.int64).reshape(-1, 3)
    doc.poly_primitives = [
        PolyPrimitive(id=i, indices=corners[i].copy(), triangles=triangulate_ngon(corners[i]))
        for i in range(corners.shape[0])
    ]
    return doc


def document_to_mesh(document: Document, reverse_winding: bool = False) -> Mesh3D:
    """
    Triangles of every Poly primitive, as point indices, with positions from "P".
    Polygons with fewer than three vertices contribute nothing.
    """
    pos = document.get_attribute(POSITION_ATTRIBUTE, type=AttributeType.FLOAT, owner=AttributeOwner.POINT)
    if pos is None:
        raise ValueError("Document has no point attribute 'P'.")
    refs = np.asarray(document.point_refs, dtype=np.int64)

    tris = [np.asarray(p.triangles, dtype=np.int64) for p in document.poly_primitives]
    tris = [t for t in tris if t.size >= 3]
    if tris:
        corners = np.concatenate([t[: (t.size // 3) * 3] for t in tris]).reshape(-1, 3)
        faces = refs[corners]
    else:
        faces = np.zeros((0, 3), dtype=np.int64)
    if reverse_winding:
        faces = faces[:, ::-1]

    vertices = pos.tuples()[:, :3].astype(np.float64)
    return Mesh3D(vertices=vertices, faces=np.ascontiguousarray(faces, dtype=np.int32), units="mm")


# ---------- Public API ----------

def load_stl(path: str | Path) -> Document:
    """
    Load an STL file into a Document of triangle Poly primitives.
    If the file is a Scene, geometries will be concatenated.
    """
    obj = trimesh.load(str(path), force="mesh")
    if isinstance(obj, trimesh.Scene):
        if len(obj.geometry) == 0:
            raise ValueError(f"No geometry found in scene: {path}")
        tm = trimesh.util.concatenate(tuple(obj.geometry.values()))
    else:
        tm = obj
    if not isinstance(tm, trimesh.Trimesh):
        raise TypeError(f"Unsupported mesh type for {path}")
    return document_from_mesh(_from_trimesh(tm, units="mm"))


def save_stl(document: Document, path: str | Path, reverse_winding: bool = False) -> None:
    """Save the Poly primitives of a Document as a binary STL."""
    tm = _to_trimesh(document_to_mesh(document, reverse_winding=reverse_winding))
    tm.export(str(path), file_type="stl")


__all__ = ["document_from_mesh", "document_to_mesh", "load_stl", "save_stl"]
