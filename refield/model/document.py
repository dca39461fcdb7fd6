"""Document model for loaded PDF bytes and per-page handles."""

from __future__ import annotations

from dataclasses import dataclass, field

import fitz
from pypdf import PdfReader

from refield.config import RENDER_SCALE
from refield.geometry.viewport import Viewport, normalize_rotation


@dataclass(slots=True, frozen=True)
class PageDescriptor:
    index: int
    view_box: tuple[float, float, float, float]
    rotation: int = 0

    def get_viewport(self, scale: float = RENDER_SCALE, rotation: int | None = None) -> Viewport:
        return Viewport(self.view_box, scale, self.rotation if rotation is None else rotation)


@dataclass(slots=True)
class PdfDocument:
    data: bytes
    reader: PdfReader
    handle: fitz.Document
    pages: list[PageDescriptor] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.reader.pages)

    def close(self) -> None:
        if not self.handle.is_closed:
            self.handle.close()


def describe_pages(reader: PdfReader) -> list[PageDescriptor]:
    descriptors: list[PageDescriptor] = []
    for index, page in enumerate(reader.pages):
        media = page.mediabox
        crop = page.cropbox
        left = max(min(media.left, media.right), min(crop.left, crop.right))
        bottom = max(min(media.bottom, media.top), min(crop.bottom, crop.top))
        right = min(max(media.left, media.right), max(crop.left, crop.right))
        top = min(max(media.bottom, media.top), max(crop.bottom, crop.top))
        if right <= left or top <= bottom:
            # Disjoint crop box: fall back to the media box.
            left, bottom = min(media.left, media.right), min(media.bottom, media.top)
            right, top = max(media.left, media.right), max(media.bottom, media.top)
        descriptors.append(
            PageDescriptor(
                index=index,
                view_box=(float(left), float(bottom), float(right), float(top)),
                rotation=normalize_rotation(page.rotation or 0),
            )
        )
    return descriptors
