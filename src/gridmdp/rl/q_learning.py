from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

import numpy as np

from .actions import Action
from .mdp import MarkovDecisionProblem
from .policy import Policy, best_action, extract_policy, max_value, new_value_table, random_action

log = logging.getLogger("gridmdp.rl")


class QLearningEngine:
    """
    Online tabular TD(0) control on a live MarkovDecisionProblem.

    One iteration = one environment step: pick an action epsilon-greedily
    (greedy with probability `exploit`), perform it through the noisy model, then

      Q(s, a) <- (1 - alpha) * Q(s, a) + alpha * (r + gamma * max_a' Q(s', a'))

    Reaching a terminal restarts the agent; the table is kept. No early stopping.
    """

    def __init__(
        self,
        mdp: MarkovDecisionProblem,
        alpha: float = 0.7,
        gamma: float = 0.9,
        exploit: float = 0.8,
    ):
        for name, v in (("alpha", alpha), ("gamma", gamma), ("exploit", exploit)):
            if not 0.0 <= v <= 1.0:
                raise ValueError(f"{name} must lie in [0, 1], got {v}")
        self.mdp = mdp
        self.alpha = float(alpha)
        self.gamma = float(gamma)
        self.exploit = float(exploit)
        self.table = new_value_table(mdp.width, mdp.height)
        self.total_reward = 0.0
        self.iterations_done = 0

    def choose_action(self) -> Action:
        rng = self.mdp.rng
        if rng.random() < self.exploit:
            return best_action(self.table, *self.mdp.position, rng)
        return random_action(rng)

    def update(self, action: Action) -> float:
        mdp = self.mdp
        x1, y1 = mdp.position
        r = mdp.perform_action(action)
        x2, y2 = mdp.position
        target = r + self.gamma * max_value(self.table, x2, y2)
        self.table[x1, y1, action] = (1 - self.alpha) * self.table[x1, y1, action] + self.alpha * target
        if mdp.terminated:
            mdp.reset()
        return r

    def run(self, iterations: int) -> np.ndarray:
        for _ in range(iterations):
            r = self.update(self.choose_action())
            self.total_reward += r
            self.mdp.total_reward += r
            self.iterations_done += 1
        log.info(
            f"q-learning: {self.iterations_done} steps, alpha={self.alpha}, gamma={self.gamma}, "
            f"exploit={self.exploit}, return={self.total_reward:.3f}"
        )
        return self.table

    def policy(self) -> Policy:
        return extract_policy(self.table, self.mdp.rng)


def q_learning(
    mdp: MarkovDecisionProblem,
    iterations: int = 5000,
    deterministic: Optional[bool] = None,
    alpha: float = 0.7,
    gamma: float = 0.9,
    exploit: float = 0.8,
) -> Tuple[np.ndarray, Policy, Dict[str, float]]:
    """
    Learn from `iterations` live steps starting at the initial state.
    Returns (Q, greedy_policy, info) with info = {"iterations", "total_reward"}.
    """
    if deterministic is not None:
        mdp.deterministic = bool(deterministic)
    mdp.reset()
    engine = QLearningEngine(mdp, alpha=alpha, gamma=gamma, exploit=exploit)
    Q = engine.run(iterations)
    return Q, engine.policy(), {"iterations": engine.iterations_done, "total_reward": engine.total_reward}
