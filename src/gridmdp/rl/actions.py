from __future__ import annotations

from enum import IntEnum
from typing import Tuple


class Action(IntEnum):
    """
    The four cardinal moves, numbered in clockwise order so that slips are
    index arithmetic modulo 4:

      UP(0) -> RIGHT(1) -> DOWN(2) -> LEFT(3) -> UP

    The integer value doubles as the last-axis index of a value table.
    """

    UP = 0
    RIGHT = 1
    DOWN = 2
    LEFT = 3

    def next(self) -> "Action":
        return Action((self + 1) % 4)

    def previous(self) -> "Action":
        return Action((self - 1) % 4)

    def opposite(self) -> "Action":
        return Action((self + 2) % 4)

    @property
    def delta(self) -> Tuple[int, int]:
        # y grows upwards
        return _DELTA[self]

    @property
    def arrow(self) -> str:
        return _ARROWS[self]

    @classmethod
    def parse(cls, name: str) -> "Action":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown action: {name!r}") from None


_DELTA = {
    Action.UP: (0, 1),
    Action.RIGHT: (1, 0),
    Action.DOWN: (0, -1),
    Action.LEFT: (-1, 0),
}

_ARROWS = {Action.UP: "↑", Action.RIGHT: "→", Action.DOWN: "↓", Action.LEFT: "←"}

# Greedy comparisons and uniform draws walk the actions in this order.
COMPARISON_ORDER: Tuple[Action, ...] = (Action.UP, Action.DOWN, Action.LEFT, Action.RIGHT)
