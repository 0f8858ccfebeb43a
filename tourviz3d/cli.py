from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from tourviz3d.grid3d import GridDims3D, Node, TourVizError, as_node
from tourviz3d.panel3d import EventType, PanelController
from tourviz3d.style3d import DEFAULT_PANEL_COLOR
from tourviz3d.viz3d import PanelScene, SceneFrame, plot_scene, render_gif

logger = logging.getLogger(__name__)


@dataclass
class PanelConfig:
    name: str
    offset: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    color: str = DEFAULT_PANEL_COLOR
    start: Node = (0, 0, 0)
    blocked: List[Node] = field(default_factory=list)


@dataclass
class EventConfig:
    panel: str
    kind: EventType
    pos: Node
    step: int | None = None


@dataclass
class ReplayConfig:
    dims: GridDims3D
    separation: float
    strict: bool
    exclusive_active: bool
    output_png: Path
    output_gif: Path | None
    gif_step: int
    panels: List[PanelConfig]
    events: List[EventConfig]


@dataclass
class ReplayResult:
    controllers: Dict[str, PanelController]
    frames: List[List[SceneFrame]]


def _parse_point(value: str) -> Tuple[int, int, int]:
    parts = value.split(",")
    if len(parts) != 3:
        raise argparse.ArgumentTypeError("Point must be in x,y,z format.")
    return int(parts[0]), int(parts[1]), int(parts[2])


def _require(value: Any, kind: type, what: str) -> Any:
    if not isinstance(value, kind):
        raise ValueError(f"{what} must be a {kind.__name__}, got {value!r}.")
    return value


def _parse_panels(raw: Any) -> List[PanelConfig]:
    panels: List[PanelConfig] = []
    for i, panel in enumerate(_require(raw or [{}], list, "'panels'")):
        _require(panel, dict, f"Panel entry {i}")
        offset = _require(panel.get("offset", [0.0, 0.0, 0.0]), list, f"Panel {i} offset")
        if len(offset) != 3:
            raise ValueError(f"Panel offset must have 3 components, got {offset!r}.")
        panels.append(
            PanelConfig(
                name=str(panel.get("name", f"panel{i}")),
                offset=(float(offset[0]), float(offset[1]), float(offset[2])),
                color=str(panel.get("color", DEFAULT_PANEL_COLOR)),
                start=as_node(panel.get("start", [0, 0, 0])),
                blocked=[as_node(node) for node in panel.get("blocked", []) or []],
            )
        )
    names = [panel.name for panel in panels]
    if len(set(names)) != len(names):
        raise ValueError(f"Panel names must be unique, got {names}.")
    return panels


def _parse_events(raw: Any, default_panel: str) -> List[EventConfig]:
    events: List[EventConfig] = []
    for i, event in enumerate(_require(raw or [], list, "'events'")):
        _require(event, dict, f"Event entry {i}")
        if "pos" not in event:
            raise ValueError(f"Event {event!r} is missing 'pos'.")
        step = event.get("step")
        events.append(
            EventConfig(
                panel=str(event.get("panel", default_panel)),
                kind=EventType.parse(event.get("type", "move")),
                pos=as_node(event["pos"]),
                step=int(step) if step is not None else None,
            )
        )
    return events


def _load_config(path: Path) -> ReplayConfig:
    data = _require(yaml.safe_load(path.read_text()) or {}, dict, "Config top level")
    panels = _parse_panels(data.get("panels"))
    return ReplayConfig(
        dims=GridDims3D.of(data.get("dims", [5, 5, 5])),
        separation=float(data.get("separation", 0.0)),
        strict=bool(data.get("strict", False)),
        exclusive_active=bool(data.get("exclusive_active", False)),
        output_png=Path(data.get("output_png", "tour.png")),
        output_gif=Path(data["output_gif"]) if data.get("output_gif") else None,
        gif_step=int(data.get("gif_step", 1)),
        panels=panels,
        events=_parse_events(data.get("events"), panels[0].name),
    )


def run_replay(cfg: ReplayConfig, capture_frames: bool = False) -> ReplayResult:
    scenes: Dict[str, PanelScene] = {}
    controllers: Dict[str, PanelController] = {}
    for panel in cfg.panels:
        scene = PanelScene(name=panel.name, color=panel.color)
        scenes[panel.name] = scene
        controllers[panel.name] = PanelController(
            cfg.dims,
            offset=panel.offset,
            color=panel.color,
            sink=scene,
            strict=cfg.strict,
            exclusive_active=cfg.exclusive_active,
            start=panel.start,
            blocked=panel.blocked,
            separation=cfg.separation,
        )

    def snapshot() -> List[SceneFrame]:
        return [scene.snapshot() for scene in scenes.values()]

    frames: List[List[SceneFrame]] = [snapshot()] if capture_frames else []
    for event in cfg.events:
        controller = controllers.get(event.panel)
        if controller is None:
            raise ValueError(f"Event targets unknown panel {event.panel!r}.")
        controller.process_event(event.kind, event.pos, event.step)
        if capture_frames:
            frames.append(snapshot())

    logger.info("Replayed %d event(s) on %d panel(s)", len(cfg.events), len(controllers))
    if not frames:
        frames.append(snapshot())
    return ReplayResult(controllers=controllers, frames=frames)


def run_demo(
    cfg: ReplayConfig,
    out_png: Path | None = None,
    out_gif: Path | None = None,
) -> ReplayResult:
    gif_path = out_gif if out_gif is not None else cfg.output_gif
    result = run_replay(cfg, capture_frames=gif_path is not None)

    for name, controller in result.controllers.items():
        if len(controller.history) == 0 and cfg.events:
            print(f"Warning: panel {name!r} ended with an empty path.")

    png_path = out_png if out_png is not None else cfg.output_png
    plot_scene(result.frames[-1], str(png_path))
    if gif_path is not None:
        render_gif(result.frames, str(gif_path), step=cfg.gif_step)
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="Replay a 3D grid tour into a panel view.")
    parser.add_argument("--config", type=Path, default=Path("configs/replay.yaml"))
    parser.add_argument("--png", type=Path, default=None)
    parser.add_argument("--gif", type=Path, default=None)
    parser.add_argument("--separation", type=float, default=None)
    parser.add_argument("--start", type=_parse_point, default=None)
    parser.add_argument("--gif-step", type=int, default=None)
    parser.add_argument(
        "--strict",
        dest="strict",
        action="store_true",
        default=None,
    )
    parser.add_argument(
        "--lenient",
        dest="strict",
        action="store_false",
        default=None,
    )
    parser.add_argument("--exclusive-active", action="store_true", default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        cfg = _load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise SystemExit(f"Could not load config {args.config}: {exc}")

    if args.separation is not None:
        cfg.separation = args.separation
    if args.start is not None:
        for panel in cfg.panels:
            panel.start = args.start
    if args.gif_step is not None:
        cfg.gif_step = args.gif_step
    if args.strict is not None:
        cfg.strict = args.strict
    if args.exclusive_active is not None:
        cfg.exclusive_active = args.exclusive_active

    try:
        result = run_demo(cfg, out_png=args.png, out_gif=args.gif)
    except (TourVizError, ValueError) as exc:
        raise SystemExit(f"Replay failed: {exc}")

    for name, controller in result.controllers.items():
        print(
            f"{name}: {len(controller.history)} step(s), "
            f"agent at {controller.agent_position}"
        )


if __name__ == "__main__":
    main()
