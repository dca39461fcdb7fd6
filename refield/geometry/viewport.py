"""Page viewport transform between PDF point space and rendered pixel space.

PDF user space has its origin at the bottom-left and y growing upwards,
rendered pages have it at the top-left with y growing downwards. A viewport
combines that flip with the page rotation (about the view box centre) and the
render scale, and translates the result so the rendered page starts at (0, 0).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import fitz

# (a, b, c, d) of the rotation-and-flip part, keyed by rotation in degrees.
_ROTATIONS: dict[int, tuple[int, int, int, int]] = {
    0: (1, 0, 0, -1),
    90: (0, 1, 1, 0),
    180: (-1, 0, 0, 1),
    270: (0, -1, -1, 0),
}


def normalize_rotation(rotation: int | float) -> int:
    """Clamp an arbitrary /Rotate value to 0, 90, 180 or 270."""
    value = int(rotation)
    if value % 90 != 0:
        return 0
    return value % 360


@dataclass(slots=True, frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    def to_pdf_array(self) -> list[float]:
        return [self.x, self.y, self.x + self.width, self.y + self.height]


class Viewport:
    """Immutable transform for one page at a fixed (scale, rotation) pair."""

    __slots__ = ("view_box", "scale", "rotation", "width", "height", "_matrix", "_inverse")

    def __init__(
        self,
        view_box: Sequence[float],
        scale: float,
        rotation: int | float = 0,
    ) -> None:
        x1, y1, x2, y2 = (float(value) for value in view_box)
        self.view_box = (x1, y1, x2, y2)
        self.scale = float(scale)
        self.rotation = normalize_rotation(rotation)

        a, b, c, d = _ROTATIONS[self.rotation]
        center_x = (x1 + x2) / 2.0
        center_y = (y1 + y2) / 2.0
        if a == 0:
            offset_x = abs(center_y - y1) * scale
            offset_y = abs(center_x - x1) * scale
            self.width = abs(y2 - y1) * scale
            self.height = abs(x2 - x1) * scale
        else:
            offset_x = abs(center_x - x1) * scale
            offset_y = abs(center_y - y1) * scale
            self.width = abs(x2 - x1) * scale
            self.height = abs(y2 - y1) * scale

        self._matrix = fitz.Matrix(
            a * scale,
            b * scale,
            c * scale,
            d * scale,
            offset_x - a * scale * center_x - c * scale * center_y,
            offset_y - b * scale * center_x - d * scale * center_y,
        )
        self._inverse = ~self._matrix

    @property
    def transform(self) -> tuple[float, float, float, float, float, float]:
        m = self._matrix
        return (m.a, m.b, m.c, m.d, m.e, m.f)

    def convert_to_viewport_point(self, x: float, y: float) -> tuple[float, float]:
        point = fitz.Point(x, y) * self._matrix
        return point.x, point.y

    def convert_to_pdf_point(self, x: float, y: float) -> tuple[float, float]:
        point = fitz.Point(x, y) * self._inverse
        return point.x, point.y

    def convert_to_viewport_rectangle(self, rect: Sequence[float]) -> list[float]:
        """Map both corners of ``[x1, y1, x2, y2]``; the result is not normalized."""
        top_left = self.convert_to_viewport_point(rect[0], rect[1])
        bottom_right = self.convert_to_viewport_point(rect[2], rect[3])
        return [top_left[0], top_left[1], bottom_right[0], bottom_right[1]]

    def __repr__(self) -> str:
        return (
            f"Viewport(view_box={self.view_box!r}, scale={self.scale!r}, "
            f"rotation={self.rotation!r})"
        )


def viewport_rect_to_pdf_rect(
    vx: float,
    vy: float,
    vwidth: float,
    vheight: float,
    viewport: Viewport,
) -> Box:
    px1, py1 = viewport.convert_to_pdf_point(vx, vy)
    px2, py2 = viewport.convert_to_pdf_point(vx + vwidth, vy + vheight)
    return Box(
        x=min(px1, px2),
        y=min(py1, py2),
        width=abs(px2 - px1),
        height=abs(py2 - py1),
    )


def pdf_rect_to_viewport_rect(pdf_rect: Sequence[float], viewport: Viewport) -> Box:
    rect = viewport.convert_to_viewport_rectangle(pdf_rect)
    return Box(
        x=min(rect[0], rect[2]),
        y=min(rect[1], rect[3]),
        width=abs(rect[2] - rect[0]),
        height=abs(rect[3] - rect[1]),
    )
