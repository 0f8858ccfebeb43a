from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple, Union

from .cells3d import CellState, GridStateStore
from .constraints3d import ConstraintManager
from .grid3d import GridDims3D, HistoryUnderflow, Node, OutOfBounds, as_node
from .mapping3d import CoordinateMapper, Point3D, to_points
from .sink3d import NullSink, RenderSink
from .style3d import DEFAULT_PANEL_COLOR, StylePalette
from .trail3d import PathTracker

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    MOVE = "move"
    REVERT = "revert"

    @classmethod
    def parse(cls, value: Union["EventType", str]) -> "EventType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown event type {value!r}; expected 'move' or 'revert'."
            ) from None


@dataclass(frozen=True)
class PanelEvent:
    kind: EventType
    node: Node
    step: Optional[int] = None


EventLike = Union[PanelEvent, Tuple[Union[EventType, str], Sequence[int]]]


def _check_separation(value: float) -> float:
    value = float(value)
    if not math.isfinite(value) or value < 0.0:
        raise ValueError(f"Separation must be a finite non-negative number, got {value}.")
    return value


class PanelController:
    # Lenient by default: unknown cells and extra reverts are skipped.
    # exclusive_active keeps only the newest history entry active.

    def __init__(
        self,
        dims: Union[GridDims3D, Iterable[int]],
        offset: Iterable[float] = (0.0, 0.0, 0.0),
        color: str = DEFAULT_PANEL_COLOR,
        sink: Optional[RenderSink] = None,
        strict: bool = False,
        exclusive_active: bool = False,
        start: Iterable[int] = (0, 0, 0),
        blocked: Iterable[Iterable[int]] = (),
        separation: float = 0.0,
    ) -> None:
        self.dims = dims if isinstance(dims, GridDims3D) else GridDims3D.of(dims)
        ox, oy, oz = (float(v) for v in offset)
        self.mapper = CoordinateMapper(offset=(ox, oy, oz))
        self.palette = StylePalette(color=color)
        self.sink: RenderSink = sink if sink is not None else NullSink()
        self.strict = strict
        self.exclusive_active = exclusive_active
        self.cells = GridStateStore()
        self.path = PathTracker(strict=strict)
        self.constraints = ConstraintManager(
            self.dims, start=start, blocked=blocked, strict=strict
        )
        self._separation = _check_separation(separation)
        self._agent: Node = self.constraints.start
        self.init_board()

    @property
    def separation(self) -> float:
        return self._separation

    @property
    def start(self) -> Node:
        return self.constraints.start

    @property
    def blocked(self) -> FrozenSet[Node]:
        return self.constraints.blocked

    @property
    def agent_position(self) -> Node:
        return self._agent

    @property
    def agent_point(self) -> Point3D:
        return self.mapper.map(self._agent, self._separation)

    @property
    def history(self) -> Tuple[Node, ...]:
        return self.path.history

    @property
    def trail_points(self) -> Tuple[Point3D, ...]:
        return self.path.trail_points

    def cell_state(self, node: Iterable[int]) -> CellState:
        return self.cells.get_state(as_node(node))

    def states(self) -> Dict[Node, CellState]:
        return self.cells.states()

    def init_board(self) -> None:
        self.cells.rebuild(self.dims)
        self.path.clear()
        for node in self.cells.nodes():
            self.sink.cell_position(node, self.mapper.map(node, self._separation))
        self.apply_constraints(self.constraints.start, self.constraints.blocked)

    def apply_constraints(
        self, start: Iterable[int], blocked_list: Iterable[Iterable[int]]
    ) -> None:
        self._agent = self.constraints.apply(start, blocked_list, self.cells, self.path)
        self._paint_all()
        self._sync_path()

    def reset(self) -> None:
        self.cells.apply_blocked_overlay(self.constraints.blocked)
        self.path.clear()
        self._agent = self.constraints.start
        self._paint_all()
        self._sync_path()

    def update_separation(self, value: float) -> None:
        self._separation = _check_separation(value)
        nodes = self.cells.nodes()
        points = to_points(self.mapper.map_many(nodes, self._separation))
        for node, point in zip(nodes, points):
            self.sink.cell_position(node, point)
        self.sink.agent_position(self.agent_point)
        self.path.remap_all(self.mapper, self._separation)
        self.sink.trail(self.path.trail_points)

    def process_event(
        self,
        event_type: Union[EventType, str],
        node: Iterable[int],
        step: Optional[int] = None,
    ) -> PanelEvent:
        kind = EventType.parse(event_type)
        node = as_node(node)
        exists = self.cells.has(node)
        if self.strict:
            if not exists:
                raise OutOfBounds(node, self.dims)
            if kind is EventType.REVERT and not len(self.path):
                raise HistoryUnderflow()
        if not exists:
            logger.debug("Event %s targets unknown cell %s", kind.value, node)

        logger.debug("step=%s %s %s", step, kind.value, node)
        self._agent = node
        self.sink.agent_position(self.agent_point)
        if kind is EventType.MOVE:
            self._on_move(node, exists)
        else:
            self._on_revert(node, exists)
        self.sink.trail(self.path.trail_points)
        return PanelEvent(kind=kind, node=node, step=step)

    def move(self, node: Iterable[int], step: Optional[int] = None) -> PanelEvent:
        return self.process_event(EventType.MOVE, node, step)

    def revert(self, node: Iterable[int], step: Optional[int] = None) -> PanelEvent:
        return self.process_event(EventType.REVERT, node, step)

    def replay(self, events: Iterable[EventLike]) -> List[PanelEvent]:
        handled: List[PanelEvent] = []
        for event in events:
            if isinstance(event, PanelEvent):
                handled.append(self.process_event(event.kind, event.node, event.step))
            else:
                kind, node = event
                handled.append(self.process_event(kind, node))
        return handled

    def _on_move(self, node: Node, exists: bool) -> None:
        if self.exclusive_active:
            previous = self.path.last
            if previous is not None and previous != node:
                self._restore(previous)
        if exists and not self.constraints.is_blocked(node):
            self._set_state(node, CellState.ACTIVE)
        self.path.push(node, self.mapper, self._separation)

    def _on_revert(self, node: Node, exists: bool) -> None:
        top = self.path.last
        if top is not None and top != node:
            logger.warning("Revert of %s does not match last visited cell %s", node, top)
        if exists:
            self._restore(node)
        self.path.pop()
        if self.exclusive_active:
            if top is not None and top != node:
                self._restore(top)
            current = self.path.last
            if (
                current is not None
                and self.cells.has(current)
                and not self.constraints.is_blocked(current)
            ):
                self._set_state(current, CellState.ACTIVE)

    def _restore(self, node: Node) -> None:
        if self.cells.has(node):
            self._set_state(node, self.constraints.resting_state(node))

    def _set_state(self, node: Node, state: CellState) -> None:
        self.cells.set_state(node, state)
        self.sink.cell_style(node, self.palette.for_state(state))

    def _paint_all(self) -> None:
        for node, state in self.cells.states().items():
            self.sink.cell_style(node, self.palette.for_state(state))

    def _sync_path(self) -> None:
        self.sink.trail(self.path.trail_points)
        self.sink.agent_position(self.agent_point)
