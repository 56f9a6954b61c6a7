"""Exceptions and warning categories raised by the geo codec."""
from __future__ import annotations


class GeoFormatError(ValueError):
    """The token tree does not have the shape the geo format requires."""


class GeoParseError(ValueError):
    """The source text is not valid JSON."""

    def __init__(self, message: str, source: str):
        super().__init__(f"{message} (source: {source})")
        self.source = source


class GeoFormatWarning(UserWarning):
    """A malformed or unsupported entry was skipped while decoding."""


__all__ = ["GeoFormatError", "GeoParseError", "GeoFormatWarning"]
