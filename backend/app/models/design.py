"""Design selection tree as delivered by the host application."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NodeType(str, enum.Enum):
    DOCUMENT = "DOCUMENT"
    PAGE = "PAGE"
    FRAME = "FRAME"
    GROUP = "GROUP"
    SECTION = "SECTION"
    COMPONENT = "COMPONENT"
    COMPONENT_SET = "COMPONENT_SET"
    INSTANCE = "INSTANCE"
    VECTOR = "VECTOR"
    BOOLEAN_OPERATION = "BOOLEAN_OPERATION"
    STAR = "STAR"
    LINE = "LINE"
    ELLIPSE = "ELLIPSE"
    POLYGON = "POLYGON"
    RECTANGLE = "RECTANGLE"
    TEXT = "TEXT"
    SLICE = "SLICE"
    STICKY = "STICKY"
    SHAPE_WITH_TEXT = "SHAPE_WITH_TEXT"
    CONNECTOR = "CONNECTOR"
    WIDGET = "WIDGET"
    EMBED = "EMBED"
    LINK_UNFURL = "LINK_UNFURL"
    MEDIA = "MEDIA"
    TABLE = "TABLE"
    TABLE_CELL = "TABLE_CELL"
    STAMP = "STAMP"
    HIGHLIGHT = "HIGHLIGHT"
    WASHI_TAPE = "WASHI_TAPE"
    CODE_BLOCK = "CODE_BLOCK"


# Kinds the analyzer recognizes; nodes of any other kind are still analyzed
KNOWN_NODE_TYPES = frozenset(t.value for t in NodeType)


SOLID_PAINT = "SOLID"


class RGB(BaseModel):
    """Normalized color, each channel in [0, 1]."""

    r: float
    g: float
    b: float


class Paint(BaseModel):
    type: str
    color: RGB | None = None


class FontName(BaseModel):
    family: str
    style: str


class DesignNode(BaseModel):
    """One element of the selection. Children stay raw and are validated lazily."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = Field(min_length=1)
    name: str | None = None
    id: str = ""
    fills: list[Paint] | None = None
    strokes: list[Paint] | None = None
    font_name: FontName | None = Field(default=None, alias="fontName")
    characters: str | None = None
    width: float | None = None
    height: float | None = None
    children: list[Any] = Field(default_factory=list)

    # Hosts report mixed values (e.g. per-range text fills) as a sentinel
    @field_validator("fills", "strokes", mode="before")
    @classmethod
    def _paints_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, list) else None

    @field_validator("font_name", mode="before")
    @classmethod
    def _font_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, FontName)) else None

    @field_validator("children", mode="before")
    @classmethod
    def _children_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []
