"""Form field writer using reportlab overlay widgets + pypdf."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from io import BytesIO
import logging

from pypdf import PdfReader, PdfWriter
from pypdf.generic import (
    ArrayObject,
    BooleanObject,
    DictionaryObject,
    FloatObject,
    IndirectObject,
    NameObject,
    PdfObject,
    TextStringObject,
)
from reportlab.lib import colors
from reportlab.pdfgen import canvas

from refield.config import (
    FIELD_NAME_PREFIXES,
    MIN_BUTTON_SIZE_PT,
    RADIO_OPTION_NAME,
    RENDER_SCALE,
)
from refield.geometry.viewport import Box, viewport_rect_to_pdf_rect
from refield.model.document import PageDescriptor
from refield.model.field import FieldOverlay, FieldType
from refield.pdf.loader import PdfLoadError, as_bytes, open_reader
from refield.pdf.saver import PdfSaveError, writer_to_bytes

logger = logging.getLogger(__name__)


class ApplyIndexError(RuntimeError):
    """Raised when an overlay points at a page the document does not have."""


@dataclass(slots=True)
class _Placement:
    key: str
    overlay: FieldOverlay
    name: str
    box: Box


def field_name_for(overlay: FieldOverlay) -> str:
    if overlay.name:
        return overlay.name
    return f"{FIELD_NAME_PREFIXES[overlay.field_type.value]}_{overlay.id}"


def apply_fields(
    flattened: bytes | bytearray | memoryview,
    overlays: Sequence[FieldOverlay],
    pages: Sequence[PageDescriptor],
    scale: float = RENDER_SCALE,
) -> bytes:
    reader = open_reader(as_bytes(flattened))
    _check_page_indexes(overlays, len(reader.pages), len(pages))

    try:
        writer = PdfWriter(clone_from=reader)
    except Exception as exc:
        raise PdfLoadError("Failed to copy flattened PDF structure") from exc

    if overlays:
        placements = [
            _place(index, overlay, pages[overlay.page_index], scale)
            for index, overlay in enumerate(overlays)
        ]
        try:
            overlay_reader = PdfReader(_build_overlay_pdf(placements))
            _transfer_widget_annotations(overlay_reader, writer, placements)
        except Exception as exc:
            raise PdfSaveError("Failed to synthesize form fields") from exc

    data = writer_to_bytes(writer)
    logger.info("Applied %d field(s) across %d page(s)", len(overlays), len(reader.pages))
    return data


def _check_page_indexes(
    overlays: Sequence[FieldOverlay],
    document_pages: int,
    page_handles: int,
) -> None:
    limit = min(document_pages, page_handles)
    for overlay in overlays:
        if not 0 <= overlay.page_index < limit:
            raise ApplyIndexError(
                f"Field {overlay.id!r} targets page index {overlay.page_index}; "
                f"document has {document_pages} page(s), {page_handles} page handle(s)"
            )


def _place(index: int, overlay: FieldOverlay, page: PageDescriptor, scale: float) -> _Placement:
    box = viewport_rect_to_pdf_rect(
        overlay.x,
        overlay.y,
        overlay.width,
        overlay.height,
        page.get_viewport(scale),
    )
    if overlay.field_type.is_button:
        box = Box(
            x=box.x,
            y=box.y,
            width=max(MIN_BUTTON_SIZE_PT, box.width),
            height=max(MIN_BUTTON_SIZE_PT, box.height),
        )
    # Overlay widgets carry a unique placeholder name until they are transferred.
    return _Placement(key=f"refield_{index}", overlay=overlay, name=field_name_for(overlay), box=box)


def _build_overlay_pdf(placements: list[_Placement]) -> BytesIO:
    """Scratch PDF whose page N carries the widgets targeting page N of the document.

    Page size is irrelevant: each widget's /Rect is rewritten from its placement
    once it is transferred.
    """
    grouped: dict[int, list[_Placement]] = defaultdict(list)
    for placement in placements:
        grouped[placement.overlay.page_index].append(placement)

    buffer = BytesIO()
    report = canvas.Canvas(buffer)
    for page_index in range(max(grouped) + 1):
        for placement in grouped.get(page_index, []):
            _draw_widget(report, placement)
        report.showPage()
    report.save()
    buffer.seek(0)
    return buffer


def _draw_widget(report: canvas.Canvas, placement: _Placement) -> None:
    overlay = placement.overlay
    box = placement.box

    if overlay.field_type is FieldType.CHECKBOX:
        report.acroForm.checkbox(
            name=placement.key,
            x=box.x,
            y=box.y,
            size=min(box.width, box.height),
            checked=bool(overlay.value),
            buttonStyle="check",
            borderWidth=0,
            fillColor=None,
            borderColor=None,
        )
    elif overlay.field_type is FieldType.RADIO:
        report.acroForm.radio(
            name=placement.key,
            value=RADIO_OPTION_NAME,
            selected=bool(overlay.value),
            x=box.x,
            y=box.y,
            size=min(box.width, box.height),
            buttonStyle="circle",
            borderWidth=0,
            fillColor=None,
            borderColor=None,
        )
    else:
        # Dropdown and date fields are written as plain text fields.
        value = overlay.value if isinstance(overlay.value, str) else ""
        report.acroForm.textfield(
            name=placement.key,
            x=box.x,
            y=box.y,
            width=box.width,
            height=box.height,
            value=value,
            maxlen=None,
            forceBorder=False,
            borderWidth=0,
            fillColor=None,
            borderColor=None,
            textColor=colors.black,
        )


def _transfer_widget_annotations(
    overlay_reader: PdfReader,
    writer: PdfWriter,
    placements: list[_Placement],
) -> None:
    by_key = {placement.key: placement for placement in placements}
    field_refs = ArrayObject()
    registered: set[int] = set()

    for page_index in sorted({placement.overlay.page_index for placement in placements}):
        source_page = overlay_reader.pages[page_index]
        target_page = writer.pages[page_index]
        source_annots = source_page.get("/Annots")
        source_annots = source_annots.get_object() if source_annots is not None else []
        target_annots_obj = target_page.get("/Annots")
        if target_annots_obj is None:
            target_annots = ArrayObject()
        else:
            target_annots = target_annots_obj.get_object()

        for annot_ref in source_annots:
            annot = annot_ref.get_object()
            if annot.get("/Subtype") != "/Widget":
                continue

            cloned_annot = annot.clone(writer, ignore_fields=("/P",))
            if getattr(target_page, "indirect_reference", None) is not None:
                cloned_annot[NameObject("/P")] = target_page.indirect_reference
            appearance = cloned_annot.get("/MK")
            if appearance is not None:
                appearance.get_object().pop("/BG", None)

            if "/T" in cloned_annot or "/Parent" not in cloned_annot:
                field_ref = _reference(writer, cloned_annot)
            else:
                field_ref = cloned_annot.raw_get("/Parent")
            field_dict = field_ref.get_object()

            placement = by_key.get(str(field_dict.get("/T")))
            if placement is not None:
                field_dict[NameObject("/T")] = TextStringObject(placement.name)
                cloned_annot[NameObject("/Rect")] = ArrayObject(
                    FloatObject(value) for value in placement.box.to_pdf_array()
                )

            target_annots.append(_reference(writer, cloned_annot))
            if field_ref.idnum not in registered:
                registered.add(field_ref.idnum)
                field_refs.append(field_ref)

        target_page[NameObject("/Annots")] = target_annots

    acroform = DictionaryObject(
        {
            NameObject("/Fields"): field_refs,
            NameObject("/NeedAppearances"): BooleanObject(True),
        }
    )
    overlay_form = overlay_reader.trailer["/Root"].get("/AcroForm")
    if overlay_form is not None:
        overlay_form = overlay_form.get_object()
        if "/DR" in overlay_form:
            resources = overlay_form["/DR"].clone(writer)
            acroform[NameObject("/DR")] = _reference(writer, resources)
        if "/DA" in overlay_form:
            acroform[NameObject("/DA")] = overlay_form["/DA"].clone(writer)
    writer._root_object[NameObject("/AcroForm")] = writer._add_object(acroform)


def _reference(writer: PdfWriter, obj: PdfObject) -> IndirectObject:
    reference = getattr(obj, "indirect_reference", None)
    if reference is None:
        reference = writer._add_object(obj)
    return reference

