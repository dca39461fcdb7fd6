"""Page rasterization for the flattened preview."""

from __future__ import annotations

import fitz

from refield.config import RENDER_SCALE
from refield.model.document import PdfDocument


class PdfRenderError(RuntimeError):
    """Raised when a page cannot be rendered."""


def render_page_png(document: PdfDocument, page_index: int, scale: float = RENDER_SCALE) -> bytes:
    """PNG of one page whose pixel grid matches ``document.pages[page_index].get_viewport(scale)``.

    MuPDF applies /Rotate and the crop box itself; widgets are left out so the
    preview shows page content only.
    """
    if not 0 <= page_index < len(document.pages):
        raise PdfRenderError(
            f"Page index {page_index} outside document with {len(document.pages)} page(s)"
        )

    try:
        pixmap = document.handle[page_index].get_pixmap(
            matrix=fitz.Matrix(scale, scale),
            alpha=False,
            annots=False,
        )
        return pixmap.tobytes("png")
    except Exception as exc:
        raise PdfRenderError(f"Failed to render page {page_index + 1}") from exc
