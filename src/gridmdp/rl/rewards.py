from __future__ import annotations

import logging
from dataclasses import dataclass

from .gridworld import CellKind, GridWorld
from .transition import AgentState

log = logging.getLogger("gridmdp.rl")


@dataclass
class RewardModel:
    positive: float = 1.0  # landing on a POSITIVE_TERMINAL
    negative: float = -1.0  # landing on a NEGATIVE_TERMINAL
    step: float = -0.04  # any other cell

    def _lookup(self, kind: CellKind, state: AgentState) -> float:
        if kind is CellKind.EMPTY:
            return self.step
        if kind is CellKind.POSITIVE_TERMINAL:
            return self.positive
        if kind is CellKind.NEGATIVE_TERMINAL:
            return self.negative
        # Movement legality should make this unreachable.
        log.error(
            f"reward: agent at {state.position} stands on {kind.name}; "
            "expected an empty or terminal cell"
        )
        return 0.0

    def reward(self, state: AgentState, grid: GridWorld) -> float:
        """
        Reward for the cell the agent occupies. Entering a terminal sets
        state.terminated; once terminated, every query yields 0 until reset.
        """
        if state.terminated:
            return 0.0
        kind = grid.cell_at(*state.position)
        r = self._lookup(kind, state)
        if kind.is_terminal:
            state.terminated = True
        return r

    def preview_reward(self, state: AgentState, grid: GridWorld) -> float:
        """Same lookup as reward() without touching the termination flag."""
        return self._lookup(grid.cell_at(*state.position), state)
