from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import to_rgba

from .grid3d import Node
from .mapping3d import Point3D
from .style3d import AGENT_COLOR, DEFAULT_PANEL_COLOR, CellStyle, StylePalette

CELL_MARKER_SIZE = 140.0


@dataclass(frozen=True)
class SceneFrame:
    name: str
    cells: Tuple[Tuple[Point3D, CellStyle], ...]
    agent: Point3D | None
    trail: Tuple[Point3D, ...]
    color: str = DEFAULT_PANEL_COLOR
    agent_color: str = AGENT_COLOR


class PanelScene:
    def __init__(
        self,
        name: str = "panel",
        color: str = DEFAULT_PANEL_COLOR,
        agent_color: str = AGENT_COLOR,
    ) -> None:
        self.name = name
        self.color = color
        self.agent_color = agent_color
        self._default_style = StylePalette(color=color).free
        self._positions: Dict[Node, Point3D] = {}
        self._styles: Dict[Node, CellStyle] = {}
        self.agent: Point3D | None = None
        self.trail_points: Tuple[Point3D, ...] = ()

    def cell_style(self, node: Node, style: CellStyle) -> None:
        self._styles[node] = style

    def cell_position(self, node: Node, point: Point3D) -> None:
        self._positions[node] = point

    def agent_position(self, point: Point3D) -> None:
        self.agent = point

    def trail(self, points: Sequence[Point3D]) -> None:
        self.trail_points = tuple(points)

    def style_of(self, node: Node) -> CellStyle:
        return self._styles.get(node, self._default_style)

    def snapshot(self) -> SceneFrame:
        cells = tuple(
            (point, self.style_of(node)) for node, point in self._positions.items()
        )
        return SceneFrame(
            name=self.name,
            cells=cells,
            agent=self.agent,
            trail=self.trail_points,
            color=self.color,
            agent_color=self.agent_color,
        )


def _plot_coords(points: Sequence[Point3D]) -> np.ndarray:
    # Render space is (x, up, depth); matplotlib wants z up.
    if not points:
        return np.zeros((0, 3), dtype=float)
    return np.asarray(points, dtype=float)[:, [0, 2, 1]]


def _scene_bounds(frames: Sequence[SceneFrame]) -> Tuple[np.ndarray, np.ndarray]:
    points: List[Point3D] = []
    for frame in frames:
        points.extend(point for point, _ in frame.cells)
        points.extend(frame.trail)
        if frame.agent is not None:
            points.append(frame.agent)
    coords = _plot_coords(points)
    if len(coords) == 0:
        return np.zeros(3), np.ones(3)
    return coords.min(axis=0) - 0.5, coords.max(axis=0) + 0.5


def _draw_cells(ax, frame: SceneFrame) -> None:
    groups: Dict[CellStyle, List[Point3D]] = {}
    for point, style in frame.cells:
        groups.setdefault(style, []).append(point)
    for style, points in groups.items():
        coords = _plot_coords(points)
        ax.scatter(
            coords[:, 0],
            coords[:, 1],
            coords[:, 2],
            marker="s",
            s=CELL_MARKER_SIZE * style.scale * style.scale,
            color=to_rgba(style.color, style.opacity),
            edgecolors="none",
            depthshade=False,
        )


def _draw_scene(ax, frames: Sequence[SceneFrame], title: str | None = None) -> None:
    for frame in frames:
        _draw_cells(ax, frame)
        if frame.trail:
            trail = _plot_coords(frame.trail)
            ax.plot(
                trail[:, 0],
                trail[:, 1],
                trail[:, 2],
                color=frame.color,
                linewidth=2,
                label=f"{frame.name} trail",
            )
        if frame.agent is not None:
            agent = _plot_coords([frame.agent])
            ax.scatter(
                agent[:, 0],
                agent[:, 1],
                agent[:, 2],
                color=frame.agent_color,
                edgecolors="#444400",
                s=80,
                label=f"{frame.name} agent",
            )

    lo, hi = _scene_bounds(frames)
    ax.set_xlim(lo[0], hi[0])
    ax.set_ylim(lo[1], hi[1])
    ax.set_zlim(lo[2], hi[2])
    try:
        ax.set_box_aspect(tuple(hi - lo))
    except AttributeError:
        pass
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    ax.set_zlabel("Layer")
    ax.view_init(elev=25, azim=-60)
    if title:
        ax.set_title(title)
    if any(frame.trail or frame.agent is not None for frame in frames):
        ax.legend(loc="upper left")


def plot_scene(
    frames: Sequence[SceneFrame],
    out_path: str,
    title: str | None = None,
) -> None:
    fig = plt.figure(figsize=(7, 6))
    ax = fig.add_subplot(111, projection="3d")
    _draw_scene(ax, frames, title)
    fig.tight_layout()
    fig.savefig(out_path, dpi=150)
    plt.close(fig)


def render_gif(
    frame_sets: Sequence[Sequence[SceneFrame]],
    out_path: str,
    step: int = 1,
    fps: int = 12,
    title: str | None = None,
) -> int:
    import imageio.v2 as imageio

    images = []
    for i in range(0, len(frame_sets), max(1, step)):
        fig = plt.figure(figsize=(7, 6))
        ax = fig.add_subplot(111, projection="3d")
        _draw_scene(ax, frame_sets[i], title)
        fig.tight_layout()
        fig.canvas.draw()
        images.append(np.asarray(fig.canvas.buffer_rgba())[..., :3].copy())
        plt.close(fig)

    imageio.mimsave(out_path, images, fps=fps)
    return len(images)
