"""TreeAnalyzer: walks a selection forest and builds an AnalysisRecord.

Traversal is depth-first pre-order with children in host order, driven by an
explicit stack so deep trees never hit the interpreter recursion limit. Each
node is read into a small fact bundle first and committed only if that
succeeded, so a malformed node is skipped as a whole (with its subtree) while
its siblings are still analyzed.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as ModelValidationError

from app.engine.config import CritiqueConfig
from app.engine.errors import CritiqueError
from app.engine.validators import validate_selection
from app.models.analysis import AnalysisRecord, Dimensions, ElementDescriptor
from app.models.design import KNOWN_NODE_TYPES, RGB, SOLID_PAINT, DesignNode, NodeType

logger = logging.getLogger(__name__)

_UNNAMED = "Unnamed"


def rgb_to_string(color: RGB) -> str:
    """Normalized RGB → ``rgb(r, g, b)`` with 8-bit channels."""
    r, g, b = (_channel(c) for c in (color.r, color.g, color.b))
    return f"rgb({r}, {g}, {b})"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _channel(value: float) -> int:
    return max(0, min(255, _round_half_up(value * 255)))


def _raw_children(raw: Any) -> list[Any]:
    if isinstance(raw, DesignNode):
        return raw.children
    if isinstance(raw, Mapping):
        children = raw.get("children")
        return children if isinstance(children, list) else []
    return []


def count_nodes(nodes: Sequence[Any], limit: int) -> int:
    """Count object-shaped nodes in the forest, stopping once ``limit`` is passed."""
    total = 0
    stack = list(nodes)
    while stack:
        raw = stack.pop()
        if not isinstance(raw, (Mapping, DesignNode)):
            continue
        total += 1
        if total > limit:
            break
        stack.extend(_raw_children(raw))
    return total


@dataclass
class _NodeFacts:
    descriptor: ElementDescriptor
    type: str
    colors: list[str]
    text: str | None
    font: str | None
    size: tuple[float, float] | None


@dataclass
class _Accumulator:
    """Per-call traversal state. Dicts double as insertion-ordered sets."""

    types: dict[str, None] = field(default_factory=dict)
    colors: dict[str, None] = field(default_factory=dict)
    fonts: dict[str, None] = field(default_factory=dict)
    text_content: list[str] = field(default_factory=list)
    elements: list[ElementDescriptor] = field(default_factory=list)
    total_width: float = 0.0
    total_height: float = 0.0
    skipped: int = 0

    def commit(self, facts: _NodeFacts) -> None:
        self.elements.append(facts.descriptor)
        self.types[facts.type] = None
        for color in facts.colors:
            self.colors[color] = None
        if facts.text is not None:
            self.text_content.append(facts.text)
        if facts.font is not None:
            self.fonts[facts.font] = None
        if facts.size is not None:
            self.total_width += facts.size[0]
            self.total_height += facts.size[1]

    def build(self, top_level_count: int) -> AnalysisRecord:
        types = tuple(self.types)
        count = len(self.elements)
        summary = (
            f"Selected {top_level_count} top-level element(s) containing {count} "
            f"total elements of type(s): {', '.join(types)}"
        )
        return AnalysisRecord(
            count=count,
            types=types,
            colors=tuple(self.colors),
            fonts=tuple(self.fonts),
            text_content=tuple(self.text_content),
            elements=tuple(self.elements),
            dimensions=Dimensions(
                total_width=_round_half_up(self.total_width),
                total_height=_round_half_up(self.total_height),
            ),
            summary=summary,
        )


class TreeAnalyzer:
    """Summarizes a selection: counts, distinct types/colors/fonts, text, sizes."""

    def __init__(self, config: CritiqueConfig | None = None) -> None:
        self.config = config or CritiqueConfig()

    def analyze(self, nodes: Sequence[Any]) -> AnalysisRecord:
        start = time.perf_counter()

        validate_selection(nodes)
        if count_nodes(nodes, self.config.max_elements) > self.config.max_elements:
            raise CritiqueError.too_many_elements(self.config.max_elements)

        acc = _Accumulator()
        stack: list[Any] = list(reversed(nodes))
        while stack:
            raw = stack.pop()
            node = self._coerce(raw)
            if node is None:
                acc.skipped += 1
                continue
            try:
                facts = self._read(node)
            except Exception as e:
                acc.skipped += 1
                logger.warning("Error analyzing node %s: %s", node.name or _UNNAMED, e)
                continue
            acc.commit(facts)
            stack.extend(reversed(node.children))

        record = acc.build(len(nodes))
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug(
            "Design analysis: %d elements (%d skipped) in %.1fms",
            record.count,
            acc.skipped,
            elapsed,
        )
        return record

    @staticmethod
    def _coerce(raw: Any) -> DesignNode | None:
        if isinstance(raw, DesignNode):
            return raw
        if not isinstance(raw, Mapping):
            logger.debug("Skipping non-object node: %r", type(raw).__name__)
            return None
        try:
            return DesignNode.model_validate(raw)
        except ModelValidationError as e:
            logger.warning(
                "Skipping malformed node %s: %d invalid field(s)",
                raw.get("name") or _UNNAMED,
                e.error_count(),
            )
            return None

    @staticmethod
    def _read(node: DesignNode) -> _NodeFacts:
        colors = [
            rgb_to_string(paint.color)
            for paint in [*(node.fills or []), *(node.strokes or [])]
            if paint.type == SOLID_PAINT and paint.color is not None
        ]

        if node.type not in KNOWN_NODE_TYPES:
            logger.debug("Unfamiliar node type %s on %s", node.type, node.name or _UNNAMED)

        text = font = None
        if node.type == NodeType.TEXT.value:
            if node.characters:
                text = node.characters
            if node.font_name is not None:
                font = f"{node.font_name.family} {node.font_name.style}"

        size = None
        if (
            node.width is not None
            and node.height is not None
            and node.width >= 0
            and node.height >= 0
        ):
            size = (node.width, node.height)

        return _NodeFacts(
            descriptor=ElementDescriptor(
                type=node.type, name=node.name or _UNNAMED, id=node.id
            ),
            type=node.type,
            colors=colors,
            text=text,
            font=font,
            size=size,
        )
