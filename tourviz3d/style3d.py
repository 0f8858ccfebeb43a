from __future__ import annotations

from dataclasses import dataclass

from .cells3d import CellState

FREE_COLOR = "#ffffff"
BLOCKED_COLOR = "#4b5563"
AGENT_COLOR = "#ffff00"
DEFAULT_PANEL_COLOR = "#38bdf8"


@dataclass(frozen=True)
class CellStyle:
    state: CellState
    color: str
    opacity: float
    scale: float


@dataclass(frozen=True)
class StylePalette:
    color: str = DEFAULT_PANEL_COLOR
    agent_color: str = AGENT_COLOR

    @property
    def free(self) -> CellStyle:
        return CellStyle(CellState.FREE, FREE_COLOR, 0.1, 1.0)

    @property
    def blocked(self) -> CellStyle:
        return CellStyle(CellState.BLOCKED, BLOCKED_COLOR, 0.45, 0.85)

    @property
    def active(self) -> CellStyle:
        return CellStyle(CellState.ACTIVE, self.color, 0.8, 0.9)

    def for_state(self, state: CellState) -> CellStyle:
        if state is CellState.BLOCKED:
            return self.blocked
        if state is CellState.ACTIVE:
            return self.active
        return self.free
