import pytest

from refield.geometry.viewport import (
    Box,
    Viewport,
    normalize_rotation,
    pdf_rect_to_viewport_rect,
    viewport_rect_to_pdf_rect,
)
from refield.selftest import round_trip_error

LETTER = (0, 0, 612, 792)


@pytest.mark.parametrize(
    ("rotation", "expected"),
    [(0, 0), (90, 90), (-90, 270), (450, 90), (360, 0), (45, 0), (180.0, 180)],
)
def test_normalize_rotation(rotation, expected):
    assert normalize_rotation(rotation) == expected


@pytest.mark.parametrize(
    ("rotation", "size"),
    [(0, (918, 1188)), (90, (1188, 918)), (180, (918, 1188)), (270, (1188, 918))],
)
def test_viewport_size_swaps_for_quarter_turns(rotation, size):
    viewport = Viewport(LETTER, 1.5, rotation)
    assert (viewport.width, viewport.height) == pytest.approx(size)


def test_unrotated_viewport_flips_y_axis():
    viewport = Viewport(LETTER, 1.5, 0)
    assert viewport.convert_to_viewport_point(0, 792) == pytest.approx((0, 0))
    assert viewport.convert_to_viewport_point(612, 0) == pytest.approx((918, 1188))
    assert viewport.convert_to_pdf_point(108, 102) == pytest.approx((72, 724))


@pytest.mark.parametrize(
    ("rotation", "origin_on_screen"),
    [(0, (0, 1188)), (90, (0, 0)), (180, (918, 0)), (270, (1188, 918))],
)
def test_pdf_origin_follows_rotation(rotation, origin_on_screen):
    viewport = Viewport(LETTER, 1.5, rotation)
    assert viewport.convert_to_viewport_point(0, 0) == pytest.approx(origin_on_screen)


def test_view_box_offset_is_translated_away():
    viewport = Viewport((10, 20, 622, 812), 1.5, 0)
    assert viewport.convert_to_viewport_point(10, 812) == pytest.approx((0, 0))
    assert viewport.width == pytest.approx(918)


def test_pdf_rect_to_viewport_rect_normalizes_corners():
    viewport = Viewport(LETTER, 1.5, 0)
    box = pdf_rect_to_viewport_rect([72, 700, 272, 724], viewport)
    assert (box.x, box.y, box.width, box.height) == pytest.approx((108, 102, 300, 36))


def test_pdf_rect_to_viewport_rect_on_rotated_page():
    viewport = Viewport(LETTER, 1.5, 90)
    box = pdf_rect_to_viewport_rect([72, 700, 272, 724], viewport)
    assert (box.x, box.y, box.width, box.height) == pytest.approx((1050, 108, 36, 300))


def test_viewport_rect_to_pdf_rect_inverts_extraction():
    viewport = Viewport(LETTER, 1.5, 0)
    box = viewport_rect_to_pdf_rect(108, 102, 300, 36, viewport)
    assert box.to_pdf_array() == pytest.approx([72, 700, 272, 724])


@pytest.mark.parametrize("rotation", [0, 90, 180, 270])
@pytest.mark.parametrize(
    "rect",
    [(100, 150, 120, 30), (0, 0, 918, 1188), (417.3, 12.25, 0.5, 77.75), (5, 5, 0, 0)],
)
def test_round_trip_within_half_pixel(rotation, rect):
    viewport = Viewport(LETTER, 1.5, rotation)
    assert round_trip_error(viewport, *rect) < 0.5


def test_pdf_space_round_trip():
    viewport = Viewport(LETTER, 1.5, 270)
    original = [72.0, 660.0, 88.0, 676.0]
    on_screen = pdf_rect_to_viewport_rect(original, viewport)
    back = viewport_rect_to_pdf_rect(on_screen.x, on_screen.y, on_screen.width, on_screen.height, viewport)
    assert back.to_pdf_array() == pytest.approx(original)


def test_viewport_override_rotation_from_page_descriptor(flattened_form):
    page = flattened_form.pages[0]
    assert page.rotation == 0
    assert page.get_viewport(1.5, 90).rotation == 90
    assert page.get_viewport().scale == 1.5


def test_box_pdf_array():
    assert Box(1, 2, 3, 4).to_pdf_array() == [1, 2, 4, 6]
