from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, Tuple

from .cells3d import CellState, GridStateStore
from .grid3d import GridDims3D, Node, OutOfBounds, as_node
from .trail3d import PathTracker

logger = logging.getLogger(__name__)


class ConstraintManager:
    def __init__(
        self,
        dims: GridDims3D,
        start: Iterable[int] = (0, 0, 0),
        blocked: Iterable[Iterable[int]] = (),
        strict: bool = False,
    ) -> None:
        self.dims = dims
        self.strict = strict
        self.start, self.blocked = self._validated(start, blocked)

    def is_blocked(self, node: Node) -> bool:
        return node in self.blocked

    def resting_state(self, node: Node) -> CellState:
        return CellState.BLOCKED if node in self.blocked else CellState.FREE

    def apply(
        self,
        start: Iterable[int],
        blocked_list: Iterable[Iterable[int]],
        store: GridStateStore,
        tracker: PathTracker,
    ) -> Node:
        self.start, self.blocked = self._validated(start, blocked_list)
        store.apply_blocked_overlay(self.blocked)
        tracker.clear()
        logger.debug("Applied constraints: start=%s blocked=%d", self.start, len(self.blocked))
        return self.start

    def _validated(
        self, start: Iterable[int], blocked_list: Iterable[Iterable[int]]
    ) -> Tuple[Node, FrozenSet[Node]]:
        start_node = as_node(start)
        blocked = frozenset(as_node(node) for node in blocked_list)
        outside = [node for node in (start_node, *blocked) if not self.dims.in_bounds(node)]
        if outside:
            if self.strict:
                raise OutOfBounds(outside[0], self.dims)
            logger.warning(
                "Constraints reference %d cell(s) outside grid %s: %s",
                len(outside),
                self.dims.as_tuple(),
                sorted(outside),
            )
        return start_node, blocked
