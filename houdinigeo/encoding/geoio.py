from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..errors import GeoParseError
from ..models import Document
from .decoder import decode_document
from .encoder import build_tree
from .jsonwriter import dumps_tree


GEO_SUFFIX = ".geo"


def _default_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def loads_geo(text: str, source: str = "<memory>") -> Document:
    """Decode geo text into a new Document."""
    try:
        root = json.loads(text)
    except json.JSONDecodeError as exc:
        raise GeoParseError(f"Invalid JSON at line {exc.lineno}, column {exc.colno}: {exc.msg}", source) from exc
    return decode_document(root, source=source)


def load_geo(path: str | Path) -> Document:
    """Read and decode a .geo file."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise GeoParseError(f"File is not valid UTF-8 text: {exc.reason} at byte {exc.start}", str(path)) from exc
    return loads_geo(text, source=str(path))


def load_geo_into(path: str | Path, document: Document) -> Document:
    """
    Decode ``path`` and move the result into ``document``. The target is left
    untouched if reading or decoding fails.
    """
    decoded = load_geo(path)
    document.replace_with(decoded)
    return document


def dumps_geo(document: Document, now: Optional[datetime] = None) -> str:
    return dumps_tree(build_tree(document, now=now))


def save_geo(document: Document, path: str | Path, now: Optional[datetime] = None) -> Path:
    """
    Write ``document`` to ``path`` with the extension forced to ``.geo``.

    The text is rendered completely before the file is touched, then written to
    a temporary file next to the target and moved into place, so a failed
    export never leaves a partial file behind. Returns the written path.
    """
    if path is None or not str(path).strip():
        raise ValueError("Export path is empty.")
    target = Path(path).expanduser()
    if not target.name or target.name in (".", "..") or str(path).endswith(("/", os.sep)):
        raise ValueError(f"Export path has no file name: {path}")
    target = target.with_suffix(GEO_SUFFIX)

    text = dumps_geo(document, now=now)

    if target.parent and target.parent != Path("."):
        target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.stem}.", suffix=".tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        # mkstemp creates 0600; give the export the mode a plain open() would
        os.chmod(tmp_name, _default_file_mode())
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return target


__all__ = ["GEO_SUFFIX", "loads_geo", "load_geo", "load_geo_into", "dumps_geo", "save_geo"]
