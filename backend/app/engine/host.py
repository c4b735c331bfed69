"""Selection host: the design application that owns the node tree."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class SelectionHost(Protocol):
    def current_selection(self) -> Sequence[Any]: ...

    def close(self) -> None: ...


class StaticSelectionHost:
    """Serves a fixed forest of nodes (JSON exports, tests)."""

    def __init__(self, nodes: Sequence[Any] = ()) -> None:
        self.nodes: list[Any] = list(nodes)
        self.closed = False

    @classmethod
    def from_file(cls, path: str | Path) -> StaticSelectionHost:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        # Accept a bare node list or an export wrapper {"selection": [...]}
        if isinstance(data, dict):
            data = data.get("selection", [data])
        logger.info("Loaded %d top-level node(s) from %s", len(data), path)
        return cls(data)

    def select(self, nodes: Sequence[Any]) -> None:
        self.nodes = list(nodes)

    def current_selection(self) -> Sequence[Any]:
        return self.nodes

    def close(self) -> None:
        self.closed = True
