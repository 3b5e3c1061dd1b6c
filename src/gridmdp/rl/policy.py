from __future__ import annotations

from typing import Dict, List

import numpy as np

from .actions import COMPARISON_ORDER, Action
from .gridworld import CellKind, GridWorld, Pos

Policy = Dict[Pos, Action]


def new_value_table(width: int, height: int) -> np.ndarray:
    """Zero action values for every cell, shape [width, height, 4] indexed by Action."""
    return np.zeros((width, height, len(Action)), dtype=np.float64)


def random_action(rng: np.random.Generator) -> Action:
    return COMPARISON_ORDER[int(rng.integers(0, len(COMPARISON_ORDER)))]


def best_action(table: np.ndarray, x: int, y: int, rng: np.random.Generator) -> Action:
    """
    Greedy action at (x, y).

    If all four values are equal the choice is uniform at random. Otherwise the
    winner is found pairwise in the order UP vs DOWN -> vs LEFT -> vs RIGHT, and a
    tie keeps the earlier action.
    """
    q = table[x, y]
    if q[Action.UP] == q[Action.DOWN] == q[Action.LEFT] == q[Action.RIGHT]:
        return random_action(rng)
    best = COMPARISON_ORDER[0]
    for a in COMPARISON_ORDER[1:]:
        if q[a] > q[best]:
            best = a
    return best


def max_value(table: np.ndarray, x: int, y: int) -> float:
    return float(np.max(table[x, y]))


def extract_policy(table: np.ndarray, rng: np.random.Generator) -> Policy:
    width, height, _ = table.shape
    return {(x, y): best_action(table, x, y, rng) for x in range(width) for y in range(height)}


def format_policy(policy: Policy, grid: GridWorld) -> str:
    """Arrow diagram, top row first. Obstacles and terminals keep their own glyph."""
    glyph = {CellKind.OBSTACLE: "■", CellKind.POSITIVE_TERMINAL: "+", CellKind.NEGATIVE_TERMINAL: "-"}
    rows = []
    for y in reversed(range(grid.height)):
        row = []
        for x in range(grid.width):
            kind = grid.cell_at(x, y)
            row.append(glyph.get(kind) or policy[(x, y)].arrow)
        rows.append(" ".join(row))
    return "\n".join(rows)


def policy_lines(policy: Policy) -> List[str]:
    return [f"Best action at {x},{y}: {a.name}" for (x, y), a in sorted(policy.items())]


def policy_to_json(policy: Policy) -> Dict[str, str]:
    return {f"{x},{y}": a.name for (x, y), a in sorted(policy.items())}


def policy_from_json(raw: Dict[str, str]) -> Policy:
    """Inverse of policy_to_json: {"x,y": "UP", ...} back to a Policy."""
    pi: Policy = {}
    for key, name in raw.items():
        x, y = (int(v) for v in key.split(","))
        pi[(x, y)] = Action.parse(name)
    return pi
