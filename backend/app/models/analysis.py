"""AnalysisRecord: the summary the analyzer hands to the critique request."""

from __future__ import annotations

from app.models.base import WireModel

# Fields a record must carry before a critique can be requested
REQUIRED_FIELDS = ("count", "types", "colors", "fonts", "elements", "dimensions")


class ElementDescriptor(WireModel):
    type: str
    name: str
    id: str


class Dimensions(WireModel):
    total_width: int = 0
    total_height: int = 0


class AnalysisRecord(WireModel):
    count: int
    types: tuple[str, ...]
    colors: tuple[str, ...]
    fonts: tuple[str, ...]
    text_content: tuple[str, ...] = ()
    elements: tuple[ElementDescriptor, ...]
    dimensions: Dimensions
    summary: str = ""
