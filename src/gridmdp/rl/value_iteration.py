from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from .actions import Action
from .gridworld import CellKind
from .mdp import MarkovDecisionProblem
from .policy import Policy, extract_policy, max_value, new_value_table
from .transition import AgentState, move

log = logging.getLogger("gridmdp.rl")


class Phase(Enum):
    NOT_STARTED = "not_started"
    SWEEPING = "sweeping"
    CONVERGED = "converged"


class ValueIterationEngine:
    """
    In-place (asynchronous) value iteration over action values.

    Each backup of Q(x, y, a) uses:
      - one *sampled* reward for trying `a` from (x, y) through the live noise model
      - the best current value of the successors reached noise-free by a,
        next(a), previous(a) and opposite(a); a terminal successor is worth 0
        since nothing accrues after termination

      Q(x, y, a) = r + gamma * (perform*V(a) + sidestep/2*(V(next) + V(previous)) + backstep*V(opposite))

    Runs exactly `sweeps` passes; there is no convergence-delta stop. Probes use a
    scratch AgentState, so the live agent, its counter and termination are untouched.
    """

    def __init__(self, mdp: MarkovDecisionProblem, sweeps: int = 10000, gamma: float = 0.9):
        if sweeps < 0:
            raise ValueError("sweeps must be >= 0")
        if not 0.0 <= gamma <= 1.0:
            raise ValueError("gamma must lie in [0, 1]")
        self.mdp = mdp
        self.sweeps = int(sweeps)
        self.gamma = float(gamma)
        self.table = new_value_table(mdp.width, mdp.height)
        self.phase = Phase.NOT_STARTED
        self.sweeps_done = 0

    def _successor_value(self, x: int, y: int, action: Action) -> float:
        probe = AgentState(position=(x, y))
        move(probe, self.mdp.grid, action)
        if self.mdp.grid.cell_at(*probe.position).is_terminal:
            return 0.0
        return max_value(self.table, *probe.position)

    def _sampled_reward(self, x: int, y: int, action: Action) -> float:
        mdp = self.mdp
        probe = AgentState(position=(x, y))
        mdp.transition.apply_action(action, probe, mdp.grid, mdp.deterministic)
        if mdp.grid.cell_at(*probe.position) is CellKind.OBSTACLE:
            # probe started on an obstacle and stayed; obstacles share the step reward
            return mdp.rewards.step
        return mdp.rewards.reward(probe, mdp.grid)

    def backup(self, x: int, y: int, action: Action) -> float:
        noise = self.mdp.transition.noise
        r = self._sampled_reward(x, y, action)
        expected = (
            noise.perform * self._successor_value(x, y, action)
            + noise.sidestep / 2 * self._successor_value(x, y, action.next())
            + noise.sidestep / 2 * self._successor_value(x, y, action.previous())
            + noise.backstep * self._successor_value(x, y, action.opposite())
        )
        value = r + self.gamma * expected
        self.table[x, y, action] = value
        return value

    def sweep(self) -> None:
        self.phase = Phase.SWEEPING
        for x, y in self.mdp.grid.cells():
            for a in Action:
                self.backup(x, y, a)
        self.sweeps_done += 1

    def run(self) -> np.ndarray:
        for _ in range(self.sweeps - self.sweeps_done):
            self.sweep()
        self.phase = Phase.CONVERGED
        log.info(f"value iteration: {self.sweeps_done} sweeps, gamma={self.gamma}")
        return self.table

    def policy(self) -> Policy:
        return extract_policy(self.table, self.mdp.rng)


def execute_policy(mdp: MarkovDecisionProblem, policy: Policy, steps: int) -> float:
    """
    Follow `policy` for `steps` actions from the initial state, restarting on
    termination. Returns the reward collected and adds it to mdp.total_reward.
    """
    mdp.reset()
    total = 0.0
    for _ in range(steps):
        if mdp.terminated:
            mdp.reset()
        total += mdp.perform_action(policy[mdp.position])
    mdp.total_reward += total
    return total


def value_iteration(
    mdp: MarkovDecisionProblem,
    sweeps: int = 10000,
    test_steps: int = 5000,
    deterministic: Optional[bool] = None,
    gamma: float = 0.9,
) -> Tuple[np.ndarray, Policy, Dict[str, float]]:
    """
    Plan, extract the greedy policy, then optionally run it in the live environment.
    Returns (Q, policy, info) with info = {"sweeps", "total_reward"}.
    """
    if deterministic is not None:
        mdp.deterministic = bool(deterministic)
    engine = ValueIterationEngine(mdp, sweeps=sweeps, gamma=gamma)
    Q = engine.run()
    pi = engine.policy()
    total = execute_policy(mdp, pi, test_steps) if test_steps > 0 else 0.0
    return Q, pi, {"sweeps": engine.sweeps_done, "total_reward": total}
