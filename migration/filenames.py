"""
Filename normalization and the idempotence keys derived from it.

Source and destination copies of the same asset can differ in case,
accents and separators, so lookups go through normalize_filename().
"""

import re
import unicodedata
from typing import NamedTuple, Tuple

_SEPARATORS = re.compile(r"[\s._-]+")
_COMBINING_MARKS = re.compile("[\u0300-\u036f]")


class FilenameParts(NamedTuple):
    base: str
    ext: str


def normalize_filename(filename) -> str:
    """
    Canonicalize a filename for matching.

    Strips diacritics, lower-cases, trims and collapses runs of whitespace,
    '.', '_' and '-' into a single '-'. Returns "" for empty or non-string
    input.

    Examples:
        "Café Photo.PNG" -> "cafe-photo-png"
        "my__file--v2" -> "my-file-v2"
    """
    if not filename or not isinstance(filename, str):
        return ""
    decomposed = unicodedata.normalize("NFD", filename)
    without_marks = _COMBINING_MARKS.sub("", decomposed)
    return _SEPARATORS.sub("-", without_marks.lower().strip())


def split_extension(filename) -> FilenameParts:
    """
    Split a filename at its last '.'; the extension is lower-cased.

    Examples:
        "photo.JPG" -> ("photo", "jpg")
        "README" -> ("README", "")
    """
    if not filename or not isinstance(filename, str):
        return FilenameParts("", "")
    base, dot, ext = filename.rpartition(".")
    if not dot:
        return FilenameParts(filename, "")
    return FilenameParts(base, ext.lower())


def remote_key(filename) -> str:
    """Key used to recognise an asset across repositories."""
    return normalize_filename(split_extension(filename).base)


def local_key(asset) -> Tuple[str, str]:
    """Key used to recognise an asset in the local cache."""
    return (asset.id, asset.filename)
