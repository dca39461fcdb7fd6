"""Round-trip checks on synthetic documents: extract, flatten, re-apply, convert."""

from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
import logging

from reportlab.pdfgen import canvas

from refield.config import RENDER_SCALE
from refield.geometry.viewport import (
    Viewport,
    pdf_rect_to_viewport_rect,
    viewport_rect_to_pdf_rect,
)
from refield.pdf.audit import count_form_fields, widget_counts
from refield.pdf.extractor import extract_overlays
from refield.pdf.flattener import flatten_document
from refield.pdf.loader import load_document
from refield.pdf.writer import apply_fields

logger = logging.getLogger(__name__)

ROUND_TRIP_TOLERANCE_PX = 0.5
ROTATIONS = (0, 90, 180, 270)


@dataclass(slots=True, frozen=True)
class CheckResult:
    name: str
    passed: bool
    detail: str = ""

    def __str__(self) -> str:
        mark = "✔" if self.passed else "✘"
        return f"{mark} {self.name}" + (f" ({self.detail})" if self.detail else "")


@dataclass(slots=True)
class SelfTestReport:
    checks: list[CheckResult] = field(default_factory=list)
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None and all(check.passed for check in self.checks)

    def record(self, name: str, passed: bool, detail: str = "") -> None:
        self.checks.append(CheckResult(name=name, passed=passed, detail=detail))

    def lines(self) -> list[str]:
        rendered = [str(check) for check in self.checks]
        if self.error is not None:
            rendered.append(f"✘ Test run error: {self.error}")
        return rendered


def build_form_fixture() -> bytes:
    """One letter page with a "Name" text field and an "Agree" checkbox."""
    buffer = BytesIO()
    report = canvas.Canvas(buffer, pagesize=(612, 792))
    report.acroForm.textfield(name="Name", x=72, y=700, width=200, height=24)
    report.acroForm.checkbox(name="Agree", x=72, y=660, size=16)
    report.showPage()
    report.save()
    return buffer.getvalue()


def build_multipage_fixture() -> bytes:
    """Two pages, with a single text field on the second page only."""
    buffer = BytesIO()
    report = canvas.Canvas(buffer, pagesize=(300, 300))
    report.drawString(50, 250, "Page 1")
    report.showPage()
    report.acroForm.textfield(name="P2", x=50, y=200, width=120, height=20)
    report.showPage()
    report.save()
    return buffer.getvalue()


def round_trip_error(viewport: Viewport, vx: float, vy: float, vw: float, vh: float) -> float:
    pdf_box = viewport_rect_to_pdf_rect(vx, vy, vw, vh, viewport)
    back = pdf_rect_to_viewport_rect(pdf_box.to_pdf_array(), viewport)
    return abs(back.x - vx) + abs(back.y - vy) + abs(back.width - vw) + abs(back.height - vh)


def run_self_test(scale: float = RENDER_SCALE) -> SelfTestReport:
    report = SelfTestReport()
    try:
        _check_round_trip(report, scale)
        _check_multipage(report)
        _check_rotations(report, scale)
    except Exception as exc:
        logger.exception("Self-test aborted")
        report.error = str(exc) or type(exc).__name__
    return report


def _check_round_trip(report: SelfTestReport, scale: float) -> None:
    source = load_document(build_form_fixture())
    try:
        overlays = extract_overlays(source, scale)
    finally:
        source.close()
    report.record("extracted ≥2 widgets", len(overlays) >= 2, f"{len(overlays)} found")

    flat = flatten_document(source.data).data
    fields_left = count_form_fields(flat)
    report.record("zero fields after delete+flatten", fields_left == 0, f"{fields_left} left")

    preview = load_document(flat)
    try:
        widgets_left = sum(widget_counts(preview.reader))
        report.record(
            "no Widget annotations after flatten",
            widgets_left == 0,
            f"{widgets_left} left",
        )
        applied = apply_fields(flat, overlays, preview.pages, scale)
    finally:
        preview.close()

    applied_fields = count_form_fields(applied)
    report.record(
        "re-applied fields count ≥ overlays",
        applied_fields >= len(overlays),
        f"{applied_fields} fields for {len(overlays)} overlays",
    )
    report.record("output bytes non-empty", len(applied) > 0, f"{len(applied)} bytes")


def _check_multipage(report: SelfTestReport) -> None:
    flat = flatten_document(build_multipage_fixture()).data
    preview = load_document(flat)
    try:
        counts = widget_counts(preview.reader)
    finally:
        preview.close()
    report.record(
        "widgets removed on all pages",
        len(counts) == 2 and not any(counts),
        ", ".join(f"p{number}={count}" for number, count in enumerate(counts, start=1)),
    )


def _check_rotations(report: SelfTestReport, scale: float) -> None:
    for rotation in ROTATIONS:
        viewport = Viewport((0, 0, 612, 792), scale, rotation)
        drift = round_trip_error(viewport, 100, 150, 120, 30)
        report.record(
            f"viewport↔pdf within {ROUND_TRIP_TOLERANCE_PX}px at {rotation}°",
            drift < ROUND_TRIP_TOLERANCE_PX,
            f"drift {drift:.3f}px",
        )
