"""In-memory session state for one opened document."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import re
from uuid import uuid4

from refield.config import (
    DEFAULT_STEM,
    NEW_FIELD_HEIGHT,
    NEW_FIELD_WIDTH,
    NEW_FIELD_X,
    NEW_FIELD_Y,
    OUTPUT_SUFFIX,
)
from refield.model.document import PageDescriptor, PdfDocument
from refield.model.field import FieldOverlay, FieldType
from refield.pdf.flattener import FlattenError

_PDF_SUFFIX = re.compile(r"\.pdf$", re.IGNORECASE)


def output_filename(source_name: str | None) -> str:
    stem = _PDF_SUFFIX.sub("", source_name or "") or DEFAULT_STEM
    return f"{stem}{OUTPUT_SUFFIX}"


@dataclass(slots=True)
class DocumentSession:
    filename: str
    flattened: bytes
    preview: PdfDocument
    overlays: list[FieldOverlay] = field(default_factory=list)
    diagnostics: list[FlattenError] = field(default_factory=list)
    residual_widgets: int = 0

    @property
    def pages(self) -> list[PageDescriptor]:
        return self.preview.pages

    @property
    def page_count(self) -> int:
        return self.preview.page_count

    @property
    def output_filename(self) -> str:
        return output_filename(self.filename)

    def get_page_overlays(self, page_index: int) -> list[FieldOverlay]:
        return [overlay for overlay in self.overlays if overlay.page_index == page_index]

    def get_overlay(self, overlay_id: str) -> FieldOverlay:
        for overlay in self.overlays:
            if overlay.id == overlay_id:
                return overlay
        raise KeyError(overlay_id)

    def add_field(self, field_type: FieldType, page_index: int = 0) -> FieldOverlay:
        overlay = FieldOverlay(
            id=f"new_{uuid4().hex[:12]}",
            page_index=page_index,
            field_type=field_type,
            name="",
            value=field_type.empty_value(),
            x=NEW_FIELD_X,
            y=NEW_FIELD_Y,
            width=NEW_FIELD_WIDTH,
            height=NEW_FIELD_HEIGHT,
        )
        self._validate(overlay)
        self.overlays.append(overlay)
        return overlay

    def update_overlay(self, overlay: FieldOverlay) -> FieldOverlay:
        """Replace the overlay sharing ``overlay.id``; the only edit entry point."""
        self._validate(overlay)
        for index, current in enumerate(self.overlays):
            if current.id == overlay.id:
                self.overlays[index] = overlay
                return overlay
        raise KeyError(overlay.id)

    def duplicate_overlay(self, overlay_id: str, offset: float = 12.0) -> FieldOverlay:
        source = self.get_overlay(overlay_id)
        duplicate = replace(
            source,
            id=f"new_{uuid4().hex[:12]}",
            name="",
            x=source.x + offset,
            y=source.y + offset,
            options=list(source.options),
        )
        self.overlays.append(duplicate)
        return duplicate

    def delete_overlay(self, overlay_id: str) -> bool:
        remaining = [overlay for overlay in self.overlays if overlay.id != overlay_id]
        deleted = len(remaining) != len(self.overlays)
        self.overlays[:] = remaining
        return deleted

    def close(self) -> None:
        self.preview.close()

    def _validate(self, overlay: FieldOverlay) -> None:
        if not 0 <= overlay.page_index < self.page_count:
            raise ValueError(
                f"Page index {overlay.page_index} outside document with {self.page_count} page(s)"
            )
        if overlay.width < 0 or overlay.height < 0:
            raise ValueError(f"Negative size for field {overlay.id!r}")
