from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, Sequence, Tuple, Union

from .grid3d import Node
from .mapping3d import Point3D
from .style3d import CellStyle


class RenderSink(Protocol):
    """Receives primitive draw commands from a panel controller."""

    def cell_style(self, node: Node, style: CellStyle) -> None: ...

    def cell_position(self, node: Node, point: Point3D) -> None: ...

    def agent_position(self, point: Point3D) -> None: ...

    def trail(self, points: Sequence[Point3D]) -> None: ...


class NullSink:
    def cell_style(self, node: Node, style: CellStyle) -> None:
        pass

    def cell_position(self, node: Node, point: Point3D) -> None:
        pass

    def agent_position(self, point: Point3D) -> None:
        pass

    def trail(self, points: Sequence[Point3D]) -> None:
        pass


@dataclass(frozen=True)
class CellStyleCommand:
    node: Node
    style: CellStyle


@dataclass(frozen=True)
class CellPositionCommand:
    node: Node
    point: Point3D


@dataclass(frozen=True)
class AgentCommand:
    point: Point3D


@dataclass(frozen=True)
class TrailCommand:
    points: Tuple[Point3D, ...]


Command = Union[CellStyleCommand, CellPositionCommand, AgentCommand, TrailCommand]


class RecordingSink:
    def __init__(self) -> None:
        self.commands: List[Command] = []

    def cell_style(self, node: Node, style: CellStyle) -> None:
        self.commands.append(CellStyleCommand(node, style))

    def cell_position(self, node: Node, point: Point3D) -> None:
        self.commands.append(CellPositionCommand(node, point))

    def agent_position(self, point: Point3D) -> None:
        self.commands.append(AgentCommand(point))

    def trail(self, points: Sequence[Point3D]) -> None:
        self.commands.append(TrailCommand(tuple(points)))

    def of_type(self, kind: type) -> List[Command]:
        return [cmd for cmd in self.commands if isinstance(cmd, kind)]

    def clear(self) -> None:
        self.commands.clear()
