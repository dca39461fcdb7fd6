"""Sequencing of extract -> flatten -> preview -> apply for one document at a time.

Every library call runs in a worker thread so a caller's event loop stays
responsive. Each ``open_document`` call takes a new generation number and
re-checks it after every await; a sequence overtaken by a newer one drops its
results instead of committing them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import threading

from refield.config import RENDER_SCALE
from refield.model.field import FieldOverlay
from refield.pdf.audit import widget_counts
from refield.pdf.extractor import PdfImportError, extract_overlays
from refield.pdf.flattener import flatten_document
from refield.pdf.loader import PdfLoadError, as_bytes, load_document
from refield.pdf.renderer import render_page_png
from refield.pdf.saver import PdfSaveError
from refield.pdf.writer import apply_fields
from refield.state.session import DocumentSession

logger = logging.getLogger(__name__)

# PDF library calls never overlap, whichever pipeline issues them.
_LIBRARY_LOCK = threading.Lock()


async def _run_locked(func, *args):
    def call():
        with _LIBRARY_LOCK:
            return func(*args)

    return await asyncio.to_thread(call)


class NoDocumentError(RuntimeError):
    """Raised when an operation needs an open document and there is none."""


@dataclass(slots=True, frozen=True)
class FinalizedDocument:
    data: bytes
    filename: str


class FormPipeline:
    def __init__(self, scale: float = RENDER_SCALE) -> None:
        self.scale = scale
        self.session: DocumentSession | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    async def open_document(
        self,
        filename: str,
        data: bytes | bytearray | memoryview,
    ) -> DocumentSession | None:
        """Load, extract and flatten ``data``; ``None`` if a newer open overtook this one."""
        self._generation += 1
        generation = self._generation
        original = as_bytes(data)
        logger.info("Opening %s (%d bytes, generation %d)", filename, len(original), generation)

        try:
            overlays = await _run_locked(self._extract, original)
            if self._superseded(generation):
                return None

            flattened = await _run_locked(flatten_document, original)
            if self._superseded(generation):
                return None

            preview = await _run_locked(load_document, flattened.data)
        except (PdfLoadError, PdfSaveError):
            if not self._superseded(generation):
                await self._replace_session(None)
            raise

        if self._superseded(generation):
            await _run_locked(preview.close)
            return None

        residual = sum(widget_counts(preview.reader))
        if residual:
            logger.warning("Flatten check: %d widget(s) remained in %s", residual, filename)

        session = DocumentSession(
            filename=filename,
            flattened=flattened.data,
            preview=preview,
            overlays=overlays,
            diagnostics=list(flattened.diagnostics),
            residual_widgets=residual,
        )
        await self._replace_session(session)
        logger.info(
            "Opened %s: %d page(s), %d existing field(s)",
            filename,
            session.page_count,
            len(overlays),
        )
        return session

    async def render_pages(self) -> list[bytes]:
        """PNG images of the flattened pages, rendered one after another."""
        session = self._require_session()
        generation = self._generation
        images: list[bytes] = []
        for page_index in range(session.page_count):
            if self._superseded(generation):
                return []
            images.append(
                await _run_locked(render_page_png, session.preview, page_index, self.scale)
            )
        return [] if self._superseded(generation) else images

    async def finalize(self) -> FinalizedDocument:
        session = self._require_session()
        data = await _run_locked(
            apply_fields,
            session.flattened,
            list(session.overlays),
            session.pages,
            self.scale,
        )
        return FinalizedDocument(data=data, filename=session.output_filename)

    async def close(self) -> None:
        """Drop the session and invalidate any sequence still in flight."""
        self._generation += 1
        await self._replace_session(None)

    def _extract(self, original: bytes) -> list[FieldOverlay]:
        document = load_document(original)
        try:
            return extract_overlays(document, self.scale)
        except PdfImportError as exc:
            logger.warning("Field import warning: %s", exc)
            return []
        finally:
            document.close()

    def _superseded(self, generation: int) -> bool:
        if generation != self._generation:
            logger.info("Discarding results of superseded generation %d", generation)
            return True
        return False

    def _require_session(self) -> DocumentSession:
        if self.session is None:
            raise NoDocumentError("Open a PDF first.")
        return self.session

    async def _replace_session(self, session: DocumentSession | None) -> None:
        previous, self.session = self.session, session
        if previous is not None and previous is not session:
            await _run_locked(previous.close)
