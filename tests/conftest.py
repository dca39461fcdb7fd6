from __future__ import annotations

from io import BytesIO

import pytest
from pypdf import PdfWriter
from pypdf.generic import (
    ArrayObject,
    DictionaryObject,
    FloatObject,
    NameObject,
    NullObject,
    TextStringObject,
)
from reportlab.pdfgen import canvas

from refield.pdf.flattener import flatten_document
from refield.pdf.loader import load_document
from refield.selftest import build_form_fixture, build_multipage_fixture


@pytest.fixture
def form_pdf() -> bytes:
    return build_form_fixture()


@pytest.fixture
def multipage_pdf() -> bytes:
    return build_multipage_fixture()


@pytest.fixture
def rotated_pdf() -> bytes:
    buffer = BytesIO()
    report = canvas.Canvas(buffer, pagesize=(612, 792))
    report.setPageRotation(90)
    report.acroForm.textfield(name="Name", x=72, y=700, width=200, height=24)
    report.showPage()
    report.save()
    return buffer.getvalue()


@pytest.fixture
def tiny_widgets_pdf() -> bytes:
    buffer = BytesIO()
    report = canvas.Canvas(buffer, pagesize=(612, 792))
    report.acroForm.textfield(name="Small", x=100, y=100, width=10, height=5)
    report.acroForm.checkbox(name="Dot", x=200, y=100, size=4)
    report.showPage()
    report.save()
    return buffer.getvalue()


@pytest.fixture
def flattened_form(form_pdf):
    document = load_document(flatten_document(form_pdf).data)
    yield document
    document.close()


def _widget(rect, **entries) -> DictionaryObject:
    annot = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Annot"),
            NameObject("/Subtype"): NameObject("/Widget"),
            NameObject("/Rect"): ArrayObject(FloatObject(value) for value in rect),
        }
    )
    annot.update({NameObject(key): value for key, value in entries.items()})
    return annot


@pytest.fixture
def raw_widgets_pdf() -> bytes:
    """Hand-built widgets covering naming, inheritance, choice and link cases."""
    writer = PdfWriter()
    page = writer.add_blank_page(width=400, height=400)
    annots = ArrayObject()

    def add(annot: DictionaryObject):
        ref = writer._add_object(annot)
        annots.append(ref)
        return ref

    add(
        DictionaryObject(
            {
                NameObject("/Type"): NameObject("/Annot"),
                NameObject("/Subtype"): NameObject("/Link"),
                NameObject("/Rect"): ArrayObject(FloatObject(v) for v in (0, 0, 50, 50)),
            }
        )
    )
    add(
        _widget(
            (10, 300, 110, 320),
            **{"/FT": NameObject("/Tx"), "/TU": TextStringObject("Described field")},
        )
    )
    add(_widget((10, 260, 110, 280), **{"/FT": NameObject("/Tx")}))

    parent = DictionaryObject(
        {
            NameObject("/T"): TextStringObject("person"),
            NameObject("/FT"): NameObject("/Tx"),
            NameObject("/V"): TextStringObject("Ada"),
        }
    )
    parent_ref = writer._add_object(parent)
    kid_ref = add(_widget((10, 220, 110, 240), **{"/T": TextStringObject("name"), "/Parent": parent_ref}))
    parent[NameObject("/Kids")] = ArrayObject([kid_ref])

    add(
        _widget(
            (10, 180, 110, 200),
            **{
                "/FT": NameObject("/Ch"),
                "/T": TextStringObject("Color"),
                "/V": TextStringObject("red"),
                "/Opt": ArrayObject(
                    [
                        TextStringObject("red"),
                        ArrayObject([TextStringObject("bl"), TextStringObject("Blue")]),
                    ]
                ),
            },
        )
    )
    add(
        _widget(
            (10, 140, 30, 160),
            **{
                "/FT": NameObject("/Btn"),
                "/T": TextStringObject("Opted"),
                "/V": NameObject("/Yes"),
                "/AS": NameObject("/Yes"),
            },
        )
    )
    add(_widget((10, 100, 30, 120), **{"/FT": NameObject("/RadioGroup"), "/T": TextStringObject("Pick")}))
    add(_widget((10, 60, 110, 80), **{"/T": TextStringObject("Untyped")}))
    add(_widget((10, 20, 110, 40), **{"/FT": NameObject("/Sig"), "/T": TextStringObject("Signature")}))

    page[NameObject("/Annots")] = annots
    writer._root_object[NameObject("/AcroForm")] = writer._add_object(
        DictionaryObject(
            {
                NameObject("/Fields"): ArrayObject([parent_ref]),
                NameObject("/XFA"): TextStringObject("<xdp:xdp/>"),
            }
        )
    )

    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def _malformed_pdf(case: str) -> bytes:
    writer = PdfWriter()
    first = writer.add_blank_page(width=400, height=400)
    fine = _widget((10, 300, 110, 320), **{"/FT": NameObject("/Tx"), "/T": TextStringObject("Fine")})

    if case == "bad_rect":
        broken = _widget(
            (0, 0, 0, 0),
            **{
                "/FT": NameObject("/Tx"),
                "/T": TextStringObject("Broken"),
                "/Rect": ArrayObject(
                    [FloatObject(0), FloatObject(0), NameObject("/Bad"), FloatObject(10)]
                ),
            },
        )
        first[NameObject("/Annots")] = ArrayObject(
            [writer._add_object(broken), writer._add_object(fine)]
        )
    elif case == "null_parent":
        orphan = _widget(
            (10, 200, 110, 220),
            **{"/FT": NameObject("/Tx"), "/T": TextStringObject("Orphan"), "/Parent": NullObject()},
        )
        first[NameObject("/Annots")] = ArrayObject(
            [writer._add_object(orphan), writer._add_object(fine)]
        )
    else:
        first[NameObject("/Annots")] = NullObject()
        second = writer.add_blank_page(width=400, height=400)
        second[NameObject("/Annots")] = ArrayObject([writer._add_object(fine)])

    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture(params=["bad_rect", "null_parent", "null_annots"])
def malformed_case(request) -> tuple[str, bytes]:
    return request.param, _malformed_pdf(request.param)


@pytest.fixture
def malformed_widgets_pdf(malformed_case) -> bytes:
    return malformed_case[1]
