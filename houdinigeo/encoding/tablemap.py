"""
Ordered key/value view of the geo format's "arrays that are really maps".

Records in a geo file are written as flat arrays of alternating keys and values:
    ["pointcount", 8, "vertexcount", 24, ...]
:func:`pairs_to_dict` turns such an array into an insertion-ordered ``dict``.
"""
from __future__ import annotations

from typing import Any, Dict

from ..errors import GeoFormatError


_TOKEN_KINDS = (
    (bool, "Boolean"),
    (int, "Integer"),
    (float, "Float"),
    (str, "String"),
    (list, "Array"),
    (dict, "Object"),
)


def token_kind(token: Any) -> str:
    """JSON name of a parsed token's kind (bool is tested before int)."""
    if token is None:
        return "Null"
    for py_type, name in _TOKEN_KINDS:
        if isinstance(token, py_type):
            return name
    return type(token).__name__


def _key_string(token: Any, context: str, position: int) -> str:
    if isinstance(token, str):
        return token
    if isinstance(token, (int, float)) and not isinstance(token, bool):
        return str(token)
    raise GeoFormatError(
        f"Key #{position} of '{context}' must be a string but found '{token_kind(token)}'."
    )


def pairs_to_dict(tokens: Any, context: str = "<root>") -> Dict[str, Any]:
    """
    Pair elements (2i, 2i+1) of ``tokens`` into ``{key: value}``.

    Raises GeoFormatError if ``tokens`` is not an array, has odd length, holds a
    key that cannot be read as a string, or repeats a key.
    """
    if not isinstance(tokens, list):
        raise GeoFormatError(
            f"Expected '{context}' to be an Array of key/value pairs but found '{token_kind(tokens)}'."
        )
    if len(tokens) % 2 != 0:
        raise GeoFormatError(
            f"Key/value array '{context}' has odd length {len(tokens)}."
        )
    out: Dict[str, Any] = {}
    for i in range(0, len(tokens), 2):
        key = _key_string(tokens[i], context, i // 2)
        if key in out:
            raise GeoFormatError(f"Duplicate key '{key}' in '{context}'.")
        out[key] = tokens[i + 1]
    return out


__all__ = ["pairs_to_dict", "token_kind"]
