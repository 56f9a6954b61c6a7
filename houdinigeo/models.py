from __future__ import annotations

import dataclasses
import getpass
import platform
import socket
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import GeoFormatError


DEFAULT_FILE_VERSION = "18.5.408"

POSITION_ATTRIBUTE = "P"
NORMAL_ATTRIBUTE = "N"
COLOR_ATTRIBUTE = "Cd"


class AttributeType(Enum):
    FLOAT = "float"
    INTEGER = "integer"
    STRING = "string"


class AttributeOwner(Enum):
    VERTEX = "vertex"
    POINT = "point"
    PRIMITIVE = "primitive"
    DETAIL = "detail"


# Section keys of the "attributes" record, in file order.
ATTRIBUTE_OWNER_KEYS: Mapping[str, AttributeOwner] = MappingProxyType({
    "vertexattributes": AttributeOwner.VERTEX,
    "pointattributes": AttributeOwner.POINT,
    "primitiveattributes": AttributeOwner.PRIMITIVE,
    "globalattributes": AttributeOwner.DETAIL,
})


class PrimitiveKind(Enum):
    POLY = "Poly"
    BEZIER_CURVE = "BezierCurve"
    NURBS_CURVE = "NURBCurve"


class GroupKind(Enum):
    POINTS = "points"
    PRIMITIVES = "primitives"
    EDGES = "edges"


@dataclass
class Bounds:
    """Axis-aligned bounding box stored in the file info block."""
    minimum: Tuple[float, float, float]
    maximum: Tuple[float, float, float]

    def as_list(self) -> List[float]:
        return [float(v) for v in (*self.minimum, *self.maximum)]


@dataclass
class FileInfo:
    """
    Descriptive metadata of a geo file. Nothing here affects geometry; the
    encoder always re-stamps ``date`` with the export time.
    """
    date: datetime = datetime.min
    timetocook: float = 0.0
    software: str = "Unknown"
    artist: str = "Unknown"
    hostname: str = "Unknown"
    time: float = 0.0
    bounds: Optional[Bounds] = None
    primcount_summary: Optional[str] = None
    attribute_summary: str = ""
    group_summary: Optional[str] = None


def _empty_floats() -> np.ndarray:
    return np.zeros(0, dtype=np.float64)


def _empty_ints() -> np.ndarray:
    return np.zeros(0, dtype=np.int64)


@dataclass(eq=False)
class Attribute:
    """
    Named per-element values over one owner domain.

    Values are kept flat: element ``i`` occupies
    ``values[i * tuple_size : (i + 1) * tuple_size]``. Only the container that
    matches ``type`` is populated.
    """
    name: str
    type: AttributeType
    owner: AttributeOwner
    tuple_size: int = 1
    float_values: np.ndarray = field(default_factory=_empty_floats)
    int_values: np.ndarray = field(default_factory=_empty_ints)
    string_values: List[str] = field(default_factory=list)

    @property
    def values(self) -> Union[np.ndarray, List[str]]:
        if self.type is AttributeType.FLOAT:
            return self.float_values
        if self.type is AttributeType.INTEGER:
            return self.int_values
        return self.string_values

    @property
    def element_count(self) -> int:
        return len(self.values) // max(int(self.tuple_size), 1)

    def tuples(self) -> Union[np.ndarray, List[Tuple[str, ...]]]:
        """Values grouped per element: an (N, tuple_size) array, or tuples of strings."""
        ts = max(int(self.tuple_size), 1)
        if self.type is AttributeType.STRING:
            vals = self.string_values
            return [tuple(vals[i:i + ts]) for i in range(0, len(vals) - ts + 1, ts)]
        return np.asarray(self.values).reshape(-1, ts)

    def append_values(self, values) -> None:
        if self.type is AttributeType.FLOAT:
            extra = np.asarray(values, dtype=np.float64).ravel()
            self.float_values = np.concatenate([self.float_values, extra])
        elif self.type is AttributeType.INTEGER:
            extra = np.asarray(values, dtype=np.int64).ravel()
            self.int_values = np.concatenate([self.int_values, extra])
        else:
            if isinstance(values, str):
                values = [values]
            self.string_values.extend(str(v) for v in values)

    def add_default_values(self, count: int) -> None:
        """Append ``count`` elements of zeros (or empty strings)."""
        n = int(count) * int(self.tuple_size)
        if n <= 0:
            return
        if self.type is AttributeType.STRING:
            self.append_values([""] * n)
        else:
            self.append_values(np.zeros(n))


@dataclass(eq=False)
class PolyPrimitive:
    kind: ClassVar[PrimitiveKind] = PrimitiveKind.POLY
    id: int
    indices: np.ndarray
    triangles: np.ndarray


@dataclass(eq=False)
class BezierCurvePrimitive:
    kind: ClassVar[PrimitiveKind] = PrimitiveKind.BEZIER_CURVE
    id: int
    indices: np.ndarray
    order: int
    knots: np.ndarray


@dataclass(eq=False)
class NURBSCurvePrimitive:
    kind: ClassVar[PrimitiveKind] = PrimitiveKind.NURBS_CURVE
    id: int
    indices: np.ndarray
    order: int
    knots: np.ndarray
    end_interpolation: bool = True


Primitive = Union[PolyPrimitive, BezierCurvePrimitive, NURBSCurvePrimitive]


@dataclass
class PointGroup:
    kind: ClassVar[GroupKind] = GroupKind.POINTS
    name: str
    ids: List[int] = field(default_factory=list)
    vertex_ids: List[int] = field(default_factory=list)


@dataclass
class PrimitiveGroup:
    kind: ClassVar[GroupKind] = GroupKind.PRIMITIVES
    name: str
    ids: List[int] = field(default_factory=list)


@dataclass
class EdgeGroup:
    kind: ClassVar[GroupKind] = GroupKind.EDGES
    name: str
    point_pairs: List[Tuple[int, int]] = field(default_factory=list)


Group = Union[PointGroup, PrimitiveGroup, EdgeGroup]

_GROUP_TYPES = {
    GroupKind.POINTS: PointGroup,
    GroupKind.PRIMITIVES: PrimitiveGroup,
    GroupKind.EDGES: EdgeGroup,
}


@dataclass
class Mesh3D:
    """
    Triangle mesh.
    - vertices: (N,3) float64 array
    - faces:    (M,3) int32 array indexing into vertices
    """
    vertices: np.ndarray
    faces: np.ndarray
    units: str = "mm"


@dataclass(eq=False)
class Document:
    """
    In-memory geo document: points, vertices (references to points), attributes
    over the four owner domains, primitives and membership groups.

    Invariants (checked by :meth:`validate`):
        len(point_refs) == vertex_count
        0 <= point_refs[i] < point_count
        every primitive vertex index lies in [0, vertex_count)
        len(attr.values) == attr.tuple_size * element_count(attr.owner)
    """
    file_version: str = DEFAULT_FILE_VERSION
    has_index: bool = False
    point_count: int = 0
    vertex_count: int = 0
    prim_count: int = 0
    info: FileInfo = field(default_factory=FileInfo)
    point_refs: np.ndarray = field(default_factory=_empty_ints)
    attributes: List[Attribute] = field(default_factory=list)
    poly_primitives: List[PolyPrimitive] = field(default_factory=list)
    bezier_primitives: List[BezierCurvePrimitive] = field(default_factory=list)
    nurbs_primitives: List[NURBSCurvePrimitive] = field(default_factory=list)
    point_groups: List[PointGroup] = field(default_factory=list)
    primitive_groups: List[PrimitiveGroup] = field(default_factory=list)
    edge_groups: List[EdgeGroup] = field(default_factory=list)

    @classmethod
    def create(cls) -> "Document":
        """New empty document stamped with the current time, user and host."""
        try:
            artist = getpass.getuser()
        except (KeyError, OSError):
            artist = "Unknown"
        info = FileInfo(
            date=datetime.now(),
            software=f"Python {platform.python_version()}",
            artist=artist,
            hostname=socket.gethostname() or "Unknown",
        )
        return cls(info=info)

    def clear(self) -> None:
        self.point_count = 0
        self.vertex_count = 0
        self.prim_count = 0
        self.point_refs = _empty_ints()
        self.attributes = []
        self.poly_primitives = []
        self.bezier_primitives = []
        self.nurbs_primitives = []
        self.point_groups = []
        self.primitive_groups = []
        self.edge_groups = []

    def replace_with(self, other: "Document") -> None:
        for f in dataclasses.fields(self):
            setattr(self, f.name, getattr(other, f.name))

    @property
    def primitives(self) -> List[Primitive]:
        return [*self.poly_primitives, *self.bezier_primitives, *self.nurbs_primitives]

    def element_count(self, owner: AttributeOwner) -> int:
        if owner is AttributeOwner.VERTEX:
            return int(self.vertex_count)
        if owner is AttributeOwner.POINT:
            return int(self.point_count)
        if owner is AttributeOwner.PRIMITIVE:
            return int(self.prim_count)
        return 1

    # ---------- attributes ----------

    def has_attribute(self, name: str, owner: Optional[AttributeOwner] = None) -> bool:
        return self.get_attribute(name, owner=owner) is not None

    def get_attribute(
        self,
        name: str,
        type: Optional[AttributeType] = None,
        owner: Optional[AttributeOwner] = None,
    ) -> Optional[Attribute]:
        for attr in self.attributes:
            if attr.name != name:
                continue
            if type is not None and attr.type is not type:
                continue
            if owner is not None and attr.owner is not owner:
                continue
            return attr
        return None

    def add_attribute(
        self,
        name: str,
        type: AttributeType,
        tuple_size: int,
        owner: AttributeOwner,
    ) -> Attribute:
        """Create an attribute, filled with defaults for the elements that already exist."""
        if int(tuple_size) < 1:
            raise ValueError(f"Tuple size of attribute '{name}' must be >= 1, got {tuple_size}.")
        attr = Attribute(name=name, type=type, owner=owner, tuple_size=int(tuple_size))
        attr.add_default_values(self.element_count(owner))
        self.attributes.append(attr)
        return attr

    def get_or_create_attribute(
        self,
        name: str,
        type: AttributeType,
        tuple_size: int,
        owner: AttributeOwner,
    ) -> Attribute:
        attr = self.get_attribute(name, type=type, owner=owner)
        if attr is None:
            attr = self.add_attribute(name, type, tuple_size, owner)
        return attr

    # ---------- groups ----------

    def _group_list(self, kind: GroupKind) -> list:
        if kind is GroupKind.POINTS:
            return self.point_groups
        if kind is GroupKind.PRIMITIVES:
            return self.primitive_groups
        return self.edge_groups

    def get_group(self, name: str, kind: GroupKind) -> Optional[Group]:
        for group in self._group_list(kind):
            if group.name == name:
                return group
        return None

    def get_or_create_group(self, name: str, kind: GroupKind) -> Group:
        group = self.get_group(name, kind)
        if group is None:
            group = _GROUP_TYPES[kind](name=name)
            self._group_list(kind).append(group)
        return group

    # ---------- invariants ----------

    def validate(self) -> None:
        refs = np.asarray(self.point_refs, dtype=np.int64).ravel()
        if refs.size != int(self.vertex_count):
            raise GeoFormatError(
                f"pointref holds {refs.size} entries but vertexcount is {self.vertex_count}."
            )
        if refs.size and (refs.min() < 0 or refs.max() >= int(self.point_count)):
            raise GeoFormatError(
                f"pointref entries must lie in [0, {self.point_count}); "
                f"found range [{refs.min()}, {refs.max()}]."
            )
        for prim in self.primitives:
            idx = np.asarray(prim.indices, dtype=np.int64).ravel()
            if idx.size and (idx.min() < 0 or idx.max() >= int(self.vertex_count)):
                raise GeoFormatError(
                    f"{prim.kind.value} primitive {prim.id} references a vertex outside "
                    f"[0, {self.vertex_count})."
                )
        for attr in self.attributes:
            expected = int(attr.tuple_size) * self.element_count(attr.owner)
            if len(attr.values) != expected:
                raise GeoFormatError(
                    f"{attr.owner.value} attribute '{attr.name}' holds {len(attr.values)} values; "
                    f"expected {expected} (tuple size {attr.tuple_size})."
                )


def points_of(document: Document, indices: Sequence[int]) -> np.ndarray:
    """Map vertex indices to the point indices they reference."""
    refs = np.asarray(document.point_refs, dtype=np.int64)
    return refs[np.asarray(indices, dtype=np.int64)]
