from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Dict, List

from .grid3d import GridDims3D, Node, OutOfBounds


class CellState(str, Enum):
    FREE = "free"
    BLOCKED = "blocked"
    ACTIVE = "active"


@dataclass
class CellRecord:
    node: Node
    state: CellState = CellState.FREE


class GridStateStore:
    def __init__(self) -> None:
        self._dims: GridDims3D | None = None
        self._cells: Dict[Node, CellRecord] = {}

    @property
    def dims(self) -> GridDims3D | None:
        return self._dims

    def rebuild(self, dims: GridDims3D) -> None:
        self._dims = dims
        self._cells = {node: CellRecord(node=node) for node in dims.nodes()}

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, node: object) -> bool:
        return node in self._cells

    def has(self, node: Node) -> bool:
        return node in self._cells

    def record(self, node: Node) -> CellRecord:
        try:
            return self._cells[node]
        except KeyError:
            raise OutOfBounds(node, self._dims) from None

    def get_state(self, node: Node) -> CellState:
        return self.record(node).state

    def set_state(self, node: Node, state: CellState) -> None:
        self.record(node).state = state

    def apply_blocked_overlay(self, blocked: AbstractSet[Node]) -> None:
        for node, cell in self._cells.items():
            cell.state = CellState.BLOCKED if node in blocked else CellState.FREE

    def nodes(self) -> List[Node]:
        return list(self._cells)

    def states(self) -> Dict[Node, CellState]:
        return {node: cell.state for node, cell in self._cells.items()}

    def nodes_in(self, state: CellState) -> List[Node]:
        return [node for node, cell in self._cells.items() if cell.state is state]

    def counts(self) -> Dict[CellState, int]:
        counts = Counter(cell.state for cell in self._cells.values())
        return {state: counts.get(state, 0) for state in CellState}
