"""Extract existing form widgets from a PDF into viewport-space overlays."""

from __future__ import annotations

import logging

from pypdf.errors import PyPdfError
from pypdf.generic import ArrayObject, DictionaryObject, NameObject

from refield.config import (
    HIERARCHY_DELIMITER,
    MIN_BUTTON_SIZE_PX,
    MIN_TEXT_HEIGHT_PX,
    MIN_TEXT_WIDTH_PX,
    RENDER_SCALE,
)
from refield.geometry.viewport import Viewport, pdf_rect_to_viewport_rect
from refield.model.document import PdfDocument
from refield.model.field import FieldOverlay, FieldType

logger = logging.getLogger(__name__)

_FIELD_TYPE_CODES = {
    "Tx": FieldType.TEXT,
    "Ch": FieldType.DROPDOWN,
    "Sig": FieldType.TEXT,
    "Btn": FieldType.CHECKBOX,
}
_OFF_STATES = {"", "/Off", "Off"}
# Guards against /Parent cycles in malformed field trees.
_MAX_PARENT_DEPTH = 32


class PdfImportError(RuntimeError):
    """Raised when existing form widgets cannot be read."""


def map_field_type(code: str | None) -> FieldType:
    """Canonicalize a /FT code; pushbuttons and radios share ``Btn`` and map to checkbox."""
    if not code:
        return FieldType.TEXT
    code = str(code).lstrip("/")
    if code in _FIELD_TYPE_CODES:
        return _FIELD_TYPE_CODES[code]
    return FieldType.RADIO if "radio" in code.lower() else FieldType.TEXT


def extract_overlays(document: PdfDocument, scale: float = RENDER_SCALE) -> list[FieldOverlay]:
    extracted: list[FieldOverlay] = []

    for page, descriptor in zip(document.reader.pages, document.pages):
        page_number = descriptor.index + 1
        viewport = descriptor.get_viewport(scale)
        try:
            widgets = _page_widgets(page, page_number)
        except Exception as exc:
            raise PdfImportError(f"Failed to read annotations on page {page_number}") from exc

        for index, annot in enumerate(widgets):
            pdf_rect = _widget_rect(annot)
            if pdf_rect is None:
                logger.debug("Skipping widget %d on page %d without a usable /Rect", index, page_number)
                continue
            try:
                overlay = _build_overlay(annot, pdf_rect, viewport, descriptor.index, index)
            except (PyPdfError, AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping malformed widget %d on page %d: %s", index, page_number, exc)
                continue
            extracted.append(overlay)

    logger.debug("Extracted %d widget overlay(s)", len(extracted))
    return extracted


def _page_widgets(page: DictionaryObject, page_number: int) -> list[DictionaryObject]:
    annots = page.get("/Annots")
    annots = annots.get_object() if annots is not None else None
    if not isinstance(annots, ArrayObject):
        if annots is not None:
            logger.debug("Ignoring non-array /Annots on page %d", page_number)
        return []
    return [
        annot
        for annot in (ref.get_object() for ref in annots)
        if isinstance(annot, DictionaryObject) and annot.get("/Subtype") == "/Widget"
    ]


def _widget_rect(annot: DictionaryObject) -> list[float] | None:
    """Normalized ``[x1, y1, x2, y2]`` or ``None`` when /Rect is missing or not four numbers."""
    rect = annot.get("/Rect")
    rect = rect.get_object() if rect is not None else None
    if not isinstance(rect, ArrayObject) or len(rect) != 4:
        return None
    try:
        llx, lly, urx, ury = (float(value.get_object()) for value in rect)
    except (TypeError, ValueError):
        return None
    return [min(llx, urx), min(lly, ury), max(llx, urx), max(lly, ury)]


def _build_overlay(
    annot: DictionaryObject,
    pdf_rect: list[float],
    viewport: Viewport,
    page_index: int,
    index: int,
) -> FieldOverlay:
    page_number = page_index + 1
    box = pdf_rect_to_viewport_rect(pdf_rect, viewport)

    field_type = map_field_type(_inherited(annot, "/FT"))
    name = (
        _qualified_name(annot)
        or str(_inherited(annot, "/TU") or "")
        or f"Field_{page_number}_{index}"
    )

    if field_type.is_button:
        width = max(MIN_BUTTON_SIZE_PX, box.width)
        height = max(MIN_BUTTON_SIZE_PX, box.height)
    else:
        width = max(MIN_TEXT_WIDTH_PX, box.width)
        height = max(MIN_TEXT_HEIGHT_PX, box.height)

    return FieldOverlay(
        id=f"{page_number}_{index}_{name}",
        page_index=page_index,
        field_type=field_type,
        name=name,
        value=_field_value(annot, field_type),
        x=box.x,
        y=box.y,
        width=width,
        height=height,
        options=_choice_options(annot) if field_type is FieldType.DROPDOWN else [],
    )


def _field_chain(annot: DictionaryObject):
    """Yield the widget, then each ancestor reachable through a dictionary /Parent."""
    node = annot
    for _ in range(_MAX_PARENT_DEPTH):
        yield node
        parent = node.get("/Parent")
        parent = parent.get_object() if parent is not None else None
        if not isinstance(parent, DictionaryObject):
            return
        node = parent


def _inherited(annot: DictionaryObject, key: str):
    for node in _field_chain(annot):
        value = node.get(key)
        if value is not None:
            return value.get_object()
    return None


def _qualified_name(annot: DictionaryObject) -> str:
    parts = [str(node["/T"]) for node in _field_chain(annot) if node.get("/T") is not None]
    return HIERARCHY_DELIMITER.join(reversed(parts))


def _field_value(annot: DictionaryObject, field_type: FieldType) -> str | bool:
    value = _inherited(annot, "/V")
    if field_type.is_button:
        appearance = annot.get("/AS")
        if appearance is not None:
            return str(appearance) not in _OFF_STATES
        return str(value or "") not in _OFF_STATES
    if value is None:
        return ""
    if isinstance(value, ArrayObject):
        return str(value[0].get_object()) if len(value) else ""
    text = str(value)
    return text[1:] if isinstance(value, NameObject) else text


def _choice_options(annot: DictionaryObject) -> list[str]:
    raw = _inherited(annot, "/Opt")
    if not isinstance(raw, ArrayObject):
        return []
    options: list[str] = []
    for entry in raw:
        entry = entry.get_object()
        if isinstance(entry, ArrayObject) and entry:
            options.append(str(entry[-1].get_object()))
        else:
            options.append(str(entry))
    return options
