from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

import numpy as np

from .actions import Action
from .gridworld import GridWorld, Pos

log = logging.getLogger("gridmdp.rl")

Outcome = Tuple[float, Optional[Action]]  # (probability, executed action or None for no-step)


@dataclass(frozen=True)
class NoiseModel:
    """
    How an intended action is (mis)executed.

    - perform:  the intended action itself
    - sidestep: split evenly between previous() and next() of the intended action
    - backstep: opposite() of the intended action
    - no_step:  agent stays put
    """

    perform: float = 0.8
    sidestep: float = 0.2
    backstep: float = 0.0
    no_step: float = 0.0

    @property
    def total(self) -> float:
        return self.perform + self.sidestep + self.backstep + self.no_step

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.perform, self.sidestep, self.backstep, self.no_step

    def normalized(self) -> "NoiseModel":
        if min(self.as_tuple()) < 0:
            raise ValueError(f"Noise probabilities must be non-negative, got {self.as_tuple()}")
        total = self.total
        if total <= 0:
            raise ValueError("Noise probabilities sum to zero; cannot normalize")
        if math.isclose(total, 1.0, rel_tol=0.0, abs_tol=1e-9):
            return self
        log.warning(f"Noise probabilities {self.as_tuple()} sum to {total:.6g}, not 1; normalizing")
        return replace(
            self,
            perform=self.perform / total,
            sidestep=self.sidestep / total,
            backstep=self.backstep / total,
            no_step=self.no_step / total,
        )

    def outcomes(self, intended: Action) -> List[Outcome]:
        """Enumerate executed actions in draw order (perform, previous, next, opposite, none)."""
        half = self.sidestep / 2
        return [
            (self.perform, intended),
            (half, intended.previous()),
            (half, intended.next()),
            (self.backstep, intended.opposite()),
            (self.no_step, None),
        ]

    def sample(self, intended: Action, rng: np.random.Generator) -> Optional[Action]:
        """One categorical draw over the five outcomes with cumulative boundaries."""
        u = rng.random()
        acc = 0.0
        for p, executed in self.outcomes(intended):
            acc += p
            if u < acc:
                return executed
        # u landed in floating-point slack above the last boundary
        return None


@dataclass
class AgentState:
    position: Pos = (0, 0)
    initial_position: Pos = (0, 0)
    terminated: bool = False
    steps_since_reset: int = 0

    def reset(self) -> None:
        self.position = self.initial_position
        self.terminated = False
        self.steps_since_reset = 0


def move(state: AgentState, grid: GridWorld, action: Action) -> bool:
    """
    Move one cell in the given direction if the *target* cell is in bounds and
    not an obstacle; otherwise stay. Returns whether the agent moved.
    """
    x, y = state.position
    dx, dy = action.delta
    tx, ty = x + dx, y + dy
    if grid.is_passable(tx, ty):
        state.position = (tx, ty)
        return True
    return False


class TransitionModel:
    """Samples the executed action for an intended one and applies it to an AgentState."""

    def __init__(self, noise: NoiseModel | None = None, rng: np.random.Generator | None = None):
        self.noise = (noise or NoiseModel()).normalized()
        self.rng = rng if rng is not None else np.random.default_rng()

    def executed_action(self, intended: Action, deterministic: bool) -> Optional[Action]:
        if deterministic:
            return intended
        return self.noise.sample(intended, self.rng)

    def apply_action(
        self,
        intended: Action,
        state: AgentState,
        grid: GridWorld,
        deterministic: bool,
    ) -> Optional[Action]:
        """
        Execute `intended` through the noise model. Increments the step counter and
        returns the action that was actually executed (None for a no-step).
        """
        executed = self.executed_action(intended, deterministic)
        if executed is not None:
            move(state, grid, executed)
        state.steps_since_reset += 1
        return executed
