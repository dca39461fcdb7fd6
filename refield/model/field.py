"""Form field overlay model definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FieldType(str, Enum):
    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    DATE = "date"

    @property
    def is_button(self) -> bool:
        return self in (FieldType.CHECKBOX, FieldType.RADIO)

    def empty_value(self) -> str | bool:
        return False if self.is_button else ""


@dataclass(slots=True)
class FieldOverlay:
    """One editable field, positioned in viewport pixels on its page."""

    id: str
    page_index: int
    field_type: FieldType
    name: str
    value: str | bool
    x: float
    y: float
    width: float
    height: float
    options: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pageIndex": self.page_index,
            "type": self.field_type.value,
            "name": self.name,
            "value": self.value,
            "options": list(self.options),
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldOverlay:
        field_type = FieldType(data.get("type", FieldType.TEXT.value))
        value = data.get("value")
        if value is None:
            value = field_type.empty_value()
        elif field_type.is_button:
            value = bool(value)
        else:
            value = str(value)
        return cls(
            id=str(data["id"]),
            page_index=int(data.get("pageIndex", 0)),
            field_type=field_type,
            name=str(data.get("name") or ""),
            value=value,
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            width=max(0.0, float(data.get("width", 0.0))),
            height=max(0.0, float(data.get("height", 0.0))),
            options=[str(option) for option in data.get("options") or []],
        )
