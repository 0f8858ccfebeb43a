from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from .grid3d import HistoryUnderflow, Node
from .mapping3d import CoordinateMapper, Point3D, to_points

logger = logging.getLogger(__name__)


class PathTracker:
    def __init__(self, strict: bool = False) -> None:
        self.strict = strict
        self._history: List[Node] = []
        self._points: List[Point3D] = []

    def __len__(self) -> int:
        return len(self._history)

    @property
    def history(self) -> Tuple[Node, ...]:
        return tuple(self._history)

    @property
    def trail_points(self) -> Tuple[Point3D, ...]:
        return tuple(self._points)

    @property
    def last(self) -> Optional[Node]:
        return self._history[-1] if self._history else None

    def push(self, node: Node, mapper: CoordinateMapper, separation: float) -> None:
        self._history.append(node)
        self._points.append(mapper.map(node, separation))

    def pop(self) -> Optional[Node]:
        if not self._history:
            if self.strict:
                raise HistoryUnderflow()
            logger.debug("Ignoring pop on empty path history.")
            return None
        self._points.pop()
        return self._history.pop()

    def clear(self) -> None:
        self._history.clear()
        self._points.clear()

    def remap_all(self, mapper: CoordinateMapper, separation: float) -> None:
        self._points = to_points(mapper.map_many(self._history, separation))
