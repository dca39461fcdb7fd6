"""Destructive, best-effort removal of interactive form structure.

Phase 1 deletes the catalog's /AcroForm entry and every page's /Annots entry
with pypdf. Phase 2 re-opens the result with PyMuPDF and bakes whatever form
representation is still detected into page content. Neither phase is allowed
to abort the other: failures are logged and carried on the result as
diagnostics. Only unreadable input and a failure to serialize the phase-1
result are raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

import fitz
from pypdf import PdfWriter

from refield.pdf.loader import PdfLoadError, as_bytes, open_reader
from refield.pdf.saver import handle_to_bytes, writer_to_bytes

logger = logging.getLogger(__name__)


class FlattenError(RuntimeError):
    """Base class for non-fatal flattening failures."""


class StructuralCleanupError(FlattenError):
    """The form catalog or a page's annotation list could not be removed."""


class FlattenFallbackError(FlattenError):
    """The library flatten step failed."""


@dataclass(slots=True)
class FlattenResult:
    data: bytes
    diagnostics: list[FlattenError] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.diagnostics


def flatten_document(data: bytes | bytearray | memoryview) -> FlattenResult:
    reader = open_reader(as_bytes(data))
    try:
        writer = PdfWriter(clone_from=reader)
    except Exception as exc:
        raise PdfLoadError("Failed to copy PDF structure") from exc

    diagnostics: list[FlattenError] = []
    _strip_form_structure(writer, diagnostics)
    stripped = writer_to_bytes(writer)

    flattened = _bake_remaining_form(stripped, diagnostics)
    return FlattenResult(data=flattened, diagnostics=diagnostics)


def _strip_form_structure(writer: PdfWriter, diagnostics: list[FlattenError]) -> None:
    try:
        root = writer._root_object
        if "/AcroForm" in root:
            del root["/AcroForm"]
    except Exception as exc:
        _record(diagnostics, StructuralCleanupError("Failed to remove /AcroForm"), exc)

    for page_number, page in enumerate(writer.pages, start=1):
        try:
            if "/Annots" in page:
                del page["/Annots"]
        except Exception as exc:
            _record(
                diagnostics,
                StructuralCleanupError(f"Failed to remove /Annots on page {page_number}"),
                exc,
            )


def _bake_remaining_form(data: bytes, diagnostics: list[FlattenError]) -> bytes:
    try:
        handle = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        _record(diagnostics, FlattenFallbackError("Failed to reopen stripped PDF"), exc)
        return data

    try:
        if handle.is_form_pdf or any(page.first_widget is not None for page in handle):
            logger.info("Form structure survived hard delete; baking widgets")
            handle.bake(annots=False, widgets=True)
        return handle_to_bytes(handle)
    except Exception as exc:
        # Fall back to the phase-1 bytes.
        _record(diagnostics, FlattenFallbackError("Library flatten failed"), exc)
        return data
    finally:
        handle.close()


def _record(diagnostics: list[FlattenError], error: FlattenError, cause: Exception) -> None:
    error.__cause__ = cause
    diagnostics.append(error)
    logger.warning("%s: %s", error, cause)
