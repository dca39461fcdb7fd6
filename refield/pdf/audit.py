"""Form structure counts used to verify flatten and apply results."""

from __future__ import annotations

from pypdf import PdfReader
from pypdf.generic import ArrayObject, DictionaryObject

from refield.pdf.loader import open_reader


def widget_counts(reader: PdfReader) -> list[int]:
    """Number of widget annotations on each page; a non-array /Annots counts as none."""
    counts: list[int] = []
    for page in reader.pages:
        annots = page.get("/Annots")
        annots = annots.get_object() if annots is not None else None
        if not isinstance(annots, ArrayObject):
            counts.append(0)
            continue
        counts.append(
            sum(
                1
                for annot in (ref.get_object() for ref in annots)
                if isinstance(annot, DictionaryObject) and annot.get("/Subtype") == "/Widget"
            )
        )
    return counts


def count_widgets(data: bytes) -> int:
    return sum(widget_counts(open_reader(data)))


def count_form_fields(data: bytes) -> int:
    """Number of named fields reported by the document's AcroForm."""
    fields = open_reader(data).get_fields()
    return len(fields) if fields else 0
