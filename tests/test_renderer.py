import fitz
import pytest

from refield.pdf.loader import load_document
from refield.pdf.renderer import PdfRenderError, render_page_png


def test_render_uses_viewport_scale(flattened_form):
    image = render_page_png(flattened_form, 0, scale=1.5)

    pix = fitz.Pixmap(image)
    assert (pix.width, pix.height) == (918, 1188)


def test_rotated_page_renders_landscape(rotated_pdf):
    document = load_document(rotated_pdf)
    try:
        viewport = document.pages[0].get_viewport(1.0)
        pix = fitz.Pixmap(render_page_png(document, 0, scale=1.0))
    finally:
        document.close()
    assert (pix.width, pix.height) == (792, 612)
    assert (pix.width, pix.height) == (round(viewport.width), round(viewport.height))


@pytest.mark.parametrize("page_index", [-1, 1])
def test_out_of_range_page(flattened_form, page_index):
    with pytest.raises(PdfRenderError):
        render_page_png(flattened_form, page_index)
