"""Serialization helpers shared by the flattener and the field writer."""

from __future__ import annotations

from io import BytesIO

import fitz
from pypdf import PdfWriter


class PdfSaveError(RuntimeError):
    """Raised when a document cannot be serialized."""


def writer_to_bytes(writer: PdfWriter) -> bytes:
    # pypdf writes a classic cross-reference table, never object streams.
    buffer = BytesIO()
    try:
        writer.write(buffer)
    except Exception as exc:
        raise PdfSaveError("Failed to serialize PDF") from exc
    return buffer.getvalue()


def handle_to_bytes(handle: fitz.Document) -> bytes:
    """Full rewrite without object streams, dropping unreferenced objects."""
    try:
        return handle.tobytes(garbage=1, use_objstms=0)
    except Exception as exc:
        raise PdfSaveError("Failed to serialize PDF") from exc
