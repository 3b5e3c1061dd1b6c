from __future__ import annotations

import logging
from enum import Enum
from typing import Iterator, Tuple

import numpy as np

log = logging.getLogger("gridmdp.rl")

Pos = Tuple[int, int]


class CellKind(Enum):
    EMPTY = "empty"
    OBSTACLE = "obstacle"
    POSITIVE_TERMINAL = "positive"
    NEGATIVE_TERMINAL = "negative"
    OUT_OF_BOUNDS = "out_of_bounds"  # query sentinel, never stored

    @property
    def is_terminal(self) -> bool:
        return self in (CellKind.POSITIVE_TERMINAL, CellKind.NEGATIVE_TERMINAL)


# Stored as small ints so the landscape is a plain ndarray.
_CODES = [CellKind.EMPTY, CellKind.OBSTACLE, CellKind.POSITIVE_TERMINAL, CellKind.NEGATIVE_TERMINAL]
_CODE_OF = {k: i for i, k in enumerate(_CODES)}

_GLYPHS = {
    CellKind.EMPTY: ".",
    CellKind.OBSTACLE: "■",
    CellKind.POSITIVE_TERMINAL: "+",
    CellKind.NEGATIVE_TERMINAL: "-",
}


class GridWorld:
    """
    Static rectangular landscape of cell kinds.

    - Coordinates: (x, y), x=0..width-1 (left to right), y=0..height-1 (bottom to top)
    - Every cell starts EMPTY; only place_cell() changes a cell
    - Invalid coordinates never raise: cell_at() answers OUT_OF_BOUNDS and
      place_cell() ignores the request, both with a logged warning
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self._cells = np.zeros((self.width, self.height), dtype=np.int8)

    @classmethod
    def russell_norvig(cls) -> "GridWorld":
        """The 4x3 world from chapter 17 of Russell & Norvig."""
        g = cls(4, 3)
        g.place_cell(1, 1, CellKind.OBSTACLE)
        g.place_cell(3, 1, CellKind.NEGATIVE_TERMINAL)
        g.place_cell(3, 2, CellKind.POSITIVE_TERMINAL)
        return g

    # ---------- queries ----------

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def cell_at(self, x: int, y: int) -> CellKind:
        if not self.in_bounds(x, y):
            log.warning(f"cell_at: requested cell ({x}, {y}) outside {self.width}x{self.height} grid")
            return CellKind.OUT_OF_BOUNDS
        return _CODES[self._cells[x, y]]

    def is_passable(self, x: int, y: int) -> bool:
        """True if an agent may stand on (x, y). Silent for out-of-range targets."""
        return self.in_bounds(x, y) and _CODES[self._cells[x, y]] is not CellKind.OBSTACLE

    def cells(self) -> Iterator[Pos]:
        for x in range(self.width):
            for y in range(self.height):
                yield x, y

    # ---------- mutation ----------

    def place_cell(self, x: int, y: int, kind: CellKind) -> bool:
        """Overwrite one cell. Returns False (and logs) when nothing was placed."""
        if kind is CellKind.OUT_OF_BOUNDS:
            log.warning(f"place_cell: OUT_OF_BOUNDS is not a placeable kind (at ({x}, {y}))")
            return False
        if not self.in_bounds(x, y):
            log.warning(f"place_cell: ({x}, {y}) outside {self.width}x{self.height} grid; ignored")
            return False
        self._cells[x, y] = _CODE_OF[kind]
        return True

    # ---------- display ----------

    def render(self, agent: Pos | None = None) -> str:
        rows = []
        for y in reversed(range(self.height)):
            row = []
            for x in range(self.width):
                row.append("A" if agent == (x, y) else _GLYPHS[_CODES[self._cells[x, y]]])
            rows.append(" ".join(row))
        return "\n".join(rows)
