from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Sequence, Tuple

Node = Tuple[int, int, int]


class TourVizError(Exception):
    pass


class OutOfBounds(TourVizError, IndexError):
    def __init__(self, node: Sequence[int], dims: "GridDims3D | None" = None) -> None:
        self.node = tuple(node)
        self.dims = dims
        if dims is None:
            msg = f"Cell {self.node} does not exist."
        else:
            msg = f"Cell {self.node} is outside grid {dims.as_tuple()}."
        super().__init__(msg)


class HistoryUnderflow(TourVizError, IndexError):
    def __init__(self) -> None:
        super().__init__("Cannot revert: path history is empty.")


def _as_index(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Grid index must be an integer, got {value!r}.")
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value)
    raise ValueError(f"Grid index must be an integer, got {value!r}.")


def as_node(value: Iterable[int]) -> Node:
    try:
        parts = tuple(value)
    except TypeError:
        raise ValueError(f"Grid coordinate must be a sequence, got {value!r}.") from None
    if len(parts) != 3:
        raise ValueError(f"Grid coordinate must have 3 components, got {parts!r}.")
    return _as_index(parts[0]), _as_index(parts[1]), _as_index(parts[2])


@dataclass(frozen=True)
class GridDims3D:
    width: int
    length: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.length <= 0 or self.height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {self.as_tuple()}.")

    @classmethod
    def of(cls, dims: Iterable[int]) -> "GridDims3D":
        width, length, height = as_node(dims)
        return cls(width=width, length=length, height=height)

    @property
    def size(self) -> int:
        return self.width * self.length * self.height

    def as_tuple(self) -> Node:
        return self.width, self.length, self.height

    def in_bounds(self, node: Node) -> bool:
        x, y, z = node
        return 0 <= x < self.width and 0 <= y < self.length and 0 <= z < self.height

    def nodes(self) -> Iterator[Node]:
        for x in range(self.width):
            for y in range(self.length):
                for z in range(self.height):
                    yield x, y, z
