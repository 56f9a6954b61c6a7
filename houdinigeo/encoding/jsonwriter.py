"""
Structured JSON writer for the geo layout.

The geo format is JSON with a house style:
    [
    	"pointcount",8,
    	"info",{
    		"date": "2024-01-5 10:00:00",
    		...
    	},
    	"attributes",[
    		"pointattributes",[
    			[
    				[
    					"scope","public",
    					...
    				],
    				...
    			]
    		]
    	]
    ]

Three kinds of container are written:
- map-as-array (any ``Mapping`` that is not a :class:`JsonObject`): a JSON array of
  alternating keys and values, one key per line, value on the same line as its key
- array (list / tuple / ndarray): compact on one line, except arrays under one of
  LINEBREAK_ARRAY_KEYS which put every entry on its own line
- JSON object (:class:`JsonObject`): one ``"name": value`` property per line

The writer replays the state machine of an indenting JSON text writer (value
delimiters, a space after property colons, a closing indent for non-empty
containers) and decides per indent whether a line break is wanted from a stack of
container kinds plus the stack of map keys currently being written.
"""
from __future__ import annotations

import io
import json
import math
from enum import Enum
from typing import Any, List, Mapping, TextIO

import numpy as np


# Arrays stored under these map keys get one entry per line.
LINEBREAK_ARRAY_KEYS = frozenset({
    "vertexattributes",
    "pointattributes",
    "primitiveattributes",
    "globalattributes",
})


class JsonObject(dict):
    """A mapping written as a real JSON object instead of a key/value array."""


class _State(Enum):
    START = 0
    ARRAY_START = 1
    ARRAY = 2
    OBJECT_START = 3
    OBJECT = 4
    PROPERTY = 5


class _Hierarchy(Enum):
    MAP = 0
    OBJECT = 1
    ARRAY = 2


class _Role(Enum):
    VALUE = 0
    MAP_KEY = 1
    MAP_VALUE = 2


class _Token(Enum):
    START = 0
    PROPERTY_NAME = 1
    VALUE = 2


def format_scalar(value: Any) -> str:
    """JSON text of a scalar: ints as-is, floats always with a fraction or exponent."""
    if isinstance(value, np.generic):
        value = value.item()
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return '"NaN"'
        if math.isinf(value):
            return '"Infinity"' if value > 0 else '"-Infinity"'
        text = repr(value).replace("e", "E")
        if "." not in text and "E" not in text:
            text += ".0"
        return text
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    raise TypeError(f"Cannot write value of type {type(value).__name__} to a geo file.")


class GeoJsonWriter:
    """Write one tree (see module docstring) to ``stream``."""

    def __init__(self, stream: TextIO, indent_char: str = "\t"):
        self._out = stream
        self._indent_char = indent_char
        self._state = _State.START
        self._containers: List[_Hierarchy] = []   # open JSON containers (array / object)
        self._hierarchy: List[_Hierarchy] = []
        self._keys: List[str] = []
        self._role = _Role.VALUE
        self._linebreaks = False

    # ---------- public ----------

    def write(self, value: Any) -> None:
        if isinstance(value, JsonObject):
            self._write_object(value)
        elif isinstance(value, Mapping):
            self._write_map(value)
        elif isinstance(value, (list, tuple, np.ndarray)):
            self._write_array(value)
        else:
            self._write_scalar(value)

    # ---------- containers ----------

    def _write_map(self, mapping: Mapping) -> None:
        self._open("[", _Hierarchy.MAP)
        for key, value in mapping.items():
            self._role = _Role.MAP_KEY
            self._keys.append(key)
            self._update_linebreaks()
            self._write_scalar(key)

            self._role = _Role.MAP_VALUE
            self.write(value)

            self._role = _Role.VALUE
            self._keys.pop()
            self._update_linebreaks()
        self._close("]")

    def _write_array(self, values) -> None:
        if isinstance(values, np.ndarray):
            values = values.tolist()
        self._open("[", _Hierarchy.ARRAY)
        for value in values:
            self.write(value)
        self._close("]")

    def _write_object(self, obj: Mapping) -> None:
        self._open("{", _Hierarchy.OBJECT)
        for name, value in obj.items():
            self._auto_complete(_Token.PROPERTY_NAME)
            self._out.write(json.dumps(str(name), ensure_ascii=False) + ":")
            self._state = _State.PROPERTY
            self.write(value)
        self._close("}")

    def _write_scalar(self, value: Any) -> None:
        text = format_scalar(value)
        self._auto_complete(_Token.VALUE)
        self._out.write(text)

    # ---------- state machine ----------

    def _open(self, bracket: str, hierarchy: _Hierarchy) -> None:
        self._auto_complete(_Token.START)
        self._out.write(bracket)
        container = _Hierarchy.OBJECT if hierarchy is _Hierarchy.OBJECT else _Hierarchy.ARRAY
        self._containers.append(container)
        self._state = _State.OBJECT_START if container is _Hierarchy.OBJECT else _State.ARRAY_START
        self._hierarchy.append(hierarchy)

    def _close(self, bracket: str) -> None:
        self._containers.pop()
        if self._state not in (_State.ARRAY_START, _State.OBJECT_START):
            self._write_indent()
        self._out.write(bracket)
        self._hierarchy.pop()
        if not self._containers:
            self._state = _State.START
        elif self._containers[-1] is _Hierarchy.OBJECT:
            self._state = _State.OBJECT
        else:
            self._state = _State.ARRAY

    def _auto_complete(self, token: _Token) -> None:
        state = self._state
        if state in (_State.OBJECT, _State.ARRAY):
            self._out.write(",")
        if state is _State.PROPERTY:
            self._out.write(" ")
        in_array = state in (_State.ARRAY, _State.ARRAY_START)
        if in_array or (token is _Token.PROPERTY_NAME and state is not _State.START):
            self._write_indent()

        if token is _Token.PROPERTY_NAME:
            self._state = _State.PROPERTY
        elif token is _Token.VALUE:
            if in_array:
                self._state = _State.ARRAY
            elif state is _State.PROPERTY:
                self._state = _State.OBJECT

    def _write_indent(self) -> None:
        current = self._hierarchy[-1]
        # A map value stays on its key's line.
        if current is _Hierarchy.MAP and self._role is _Role.MAP_VALUE:
            return
        if current is _Hierarchy.ARRAY and not self._linebreaks:
            return
        self._out.write("\n" + self._indent_char * len(self._containers))

    def _update_linebreaks(self) -> None:
        self._linebreaks = bool(self._keys) and self._keys[-1] in LINEBREAK_ARRAY_KEYS


def dumps_tree(tree: Any, indent_char: str = "\t") -> str:
    """Render a whole tree to text in memory."""
    buf = io.StringIO()
    GeoJsonWriter(buf, indent_char=indent_char).write(tree)
    return buf.getvalue()


__all__ = ["JsonObject", "GeoJsonWriter", "LINEBREAK_ARRAY_KEYS", "dumps_tree", "format_scalar"]
