"""File character-set selection for CSV reading and writing."""

import codecs
import io
import logging
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

SUPPORTED_CHARSETS: dict[str, str] = {
    "gbk": "gbk",
    "gb18030": "gb18030",
    "iso-8859-1": "iso8859_1",
    "iso-8859-2": "iso8859_2",
    "iso-8859-3": "iso8859_3",
    "iso-8859-4": "iso8859_4",
    "iso-8859-9": "iso8859_9",
    "iso-8859-10": "iso8859_10",
    "iso-8859-13": "iso8859_13",
    "iso-8859-14": "iso8859_14",
    "iso-8859-15": "iso8859_15",
    "iso-8859-16": "iso8859_16",
    "cp1252": "cp1252",
    "windows-1252": "cp1252",
}


def resolve_encoding(charset: str | None) -> str:
    """Map a file charset name to a Python codec name.

    ``raw``, empty and unknown names all resolve to UTF-8; an unknown name
    only logs a warning.
    """
    name = (charset or "").strip().lower()
    if not name or name == "raw":
        return DEFAULT_ENCODING
    codec = SUPPORTED_CHARSETS.get(name)
    if codec is None:
        logger.warning("Unsupported file charset %r, falling back to %s", charset, DEFAULT_ENCODING)
        return DEFAULT_ENCODING
    return codecs.lookup(codec).name


# Raw binary fields carry undecodable bytes as lone surrogates in every charset.
ERRORS = "surrogateescape"


def wrap_reader(stream: BinaryIO, charset: str | None) -> io.TextIOWrapper:
    """Decode a binary stream for ``csv.reader``."""
    encoding = resolve_encoding(charset)
    return io.TextIOWrapper(stream, encoding=encoding, errors=ERRORS, newline="")


def wrap_writer(stream: BinaryIO, charset: str | None) -> io.TextIOWrapper:
    """Encode text written by ``csv.writer`` onto a binary stream."""
    encoding = resolve_encoding(charset)
    return io.TextIOWrapper(stream, encoding=encoding, errors=ERRORS, newline="")


def open_csv(path: str | Path, mode: str, charset: str | None) -> io.TextIOWrapper:
    """Open a CSV file for ``"r"`` or ``"w"`` through the charset transform."""
    if mode not in ("r", "w"):
        raise ValueError(f"Unsupported mode: {mode!r}")
    raw = open(path, mode + "b")
    try:
        if mode == "r":
            return wrap_reader(raw, charset)
        return wrap_writer(raw, charset)
    except Exception:
        raw.close()
        raise
