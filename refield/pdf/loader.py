"""PDF loading helpers."""

from __future__ import annotations

from io import BytesIO

import fitz
from pypdf import PdfReader

from refield.model.document import PdfDocument, describe_pages


class PdfLoadError(RuntimeError):
    """Raised when PDF bytes cannot be opened."""


def as_bytes(data: bytes | bytearray | memoryview) -> bytes:
    """Return an independent immutable copy of a bytes-like buffer."""
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"Unsupported bytes input: {type(data).__name__}")


def open_reader(data: bytes) -> PdfReader:
    if not data:
        raise PdfLoadError("Empty PDF input")
    try:
        reader = PdfReader(BytesIO(data))
    except Exception as exc:
        raise PdfLoadError("Failed to parse PDF structure") from exc
    if reader.is_encrypted:
        raise PdfLoadError("Encrypted PDF not supported")
    try:
        # Touch the page tree so structural damage surfaces here.
        len(reader.pages)
    except Exception as exc:
        raise PdfLoadError("Failed to read PDF page tree") from exc
    return reader


def load_document(data: bytes | bytearray | memoryview) -> PdfDocument:
    source = as_bytes(data)
    reader = open_reader(source)

    try:
        handle = fitz.open(stream=source, filetype="pdf")
    except Exception as exc:
        raise PdfLoadError("Failed to open PDF for rendering") from exc

    try:
        pages = describe_pages(reader)
    except Exception as exc:
        handle.close()
        raise PdfLoadError("Failed to read page geometry") from exc

    return PdfDocument(data=source, reader=reader, handle=handle, pages=pages)
