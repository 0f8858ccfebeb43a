from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

from .grid3d import Node

Point3D = Tuple[float, float, float]


@dataclass(frozen=True)
class CoordinateMapper:
    # (x, y, z) -> (x, z * (1 + separation), y) + offset
    offset: Point3D = (0.0, 0.0, 0.0)

    def map(self, node: Node, separation: float = 0.0) -> Point3D:
        x, y, z = node
        ox, oy, oz = self.offset
        return (
            float(x) + ox,
            float(z) * (1.0 + separation) + oy,
            float(y) + oz,
        )

    def map_many(self, nodes: Sequence[Node], separation: float = 0.0) -> np.ndarray:
        if not nodes:
            return np.zeros((0, 3), dtype=float)
        logical = np.asarray(nodes, dtype=float)
        spatial = logical[:, [0, 2, 1]]
        spatial[:, 1] *= 1.0 + separation
        return spatial + np.asarray(self.offset, dtype=float)


def to_points(array: np.ndarray) -> list[Point3D]:
    return [(float(row[0]), float(row[1]), float(row[2])) for row in array]
