from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, NamedTuple, Optional, Set

logger = logging.getLogger(__name__)


class Cell(NamedTuple):
    x: int
    y: int


_STEPS = ((1, 0), (-1, 0), (0, 1), (0, -1))


@dataclass(frozen=True)
class GridBounds:
    """Rectangular playing grid, ``width`` columns by ``height`` rows."""

    width: int = 8
    height: int = 8

    @property
    def capacity(self) -> int:
        return self.width * self.height

    @property
    def center(self) -> Cell:
        return Cell(self.width // 2, self.height // 2)

    def contains(self, cell: Cell) -> bool:
        return 0 <= cell[0] < self.width and 0 <= cell[1] < self.height

    def neighbours(self, cell: Cell) -> List[Cell]:
        """Edge-adjacent cells that lie inside the grid."""
        x, y = cell
        candidates = (Cell(x + dx, y + dy) for dx, dy in _STEPS)
        return [c for c in candidates if self.contains(c)]


@dataclass(frozen=True)
class Shape:
    """A polyomino: a set of cells joined by shared edges."""

    cells: FrozenSet[Cell]

    @classmethod
    def of(cls, cells: Iterable[Iterable[int]]) -> "Shape":
        return cls(frozenset(Cell(*c) for c in cells))

    @property
    def size(self) -> int:
        return len(self.cells)

    def __contains__(self, cell: object) -> bool:
        return cell in self.cells

    def is_connected(self) -> bool:
        """True when every cell is reachable from every other via edge steps."""
        if not self.cells:
            return False
        start = next(iter(self.cells))
        seen: Set[Cell] = {start}
        stack = [start]
        while stack:
            x, y = stack.pop()
            for dx, dy in _STEPS:
                nxt = Cell(x + dx, y + dy)
                if nxt in self.cells and nxt not in seen:
                    seen.add(nxt)
                    stack.append(nxt)
        return len(seen) == len(self.cells)


class ShapeGenerator:
    """Grows random polyominoes inside a bounded grid.

    Growth starts from the grid centre. Each step picks a random placed cell
    and attaches one of its free edge neighbours, so the result is connected by
    construction. When the picked cell has no free neighbour left, growth
    continues from another placed cell.
    """

    def __init__(self, bounds: Optional[GridBounds] = None, rng: Optional[random.Random] = None) -> None:
        self._bounds = bounds or GridBounds()
        self._rng = rng or random.Random()

    @property
    def bounds(self) -> GridBounds:
        return self._bounds

    def generate(self, size: int) -> Shape:
        capacity = self._bounds.capacity
        if size > capacity:
            logger.warning("Shape size %d exceeds grid capacity %d; clamping", size, capacity)
            size = capacity
        elif size < 1:
            logger.warning("Shape size %d is below 1; clamping", size)
            size = 1

        origin = self._bounds.center
        placed: List[Cell] = [origin]
        members: Set[Cell] = {origin}
        exhausted: Set[Cell] = set()

        while len(placed) < size:
            growable = [c for c in placed if c not in exhausted]
            anchor = self._rng.choice(growable)
            free = [n for n in self._bounds.neighbours(anchor) if n not in members]
            if not free:
                exhausted.add(anchor)
                continue
            cell = self._rng.choice(free)
            placed.append(cell)
            members.add(cell)

        shape = Shape(frozenset(members))
        logger.debug("Generated %d-cell shape: %s", shape.size, sorted(shape.cells))
        return shape
