from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

import numpy as np

from .actions import Action
from .gridworld import CellKind, GridWorld, Pos
from .rewards import RewardModel
from .transition import AgentState, NoiseModel, TransitionModel

log = logging.getLogger("gridmdp.rl")

# Called as observer(event, mdp) with event in {"place", "move", "reset", "state"}.
Observer = Callable[[str, "MarkovDecisionProblem"], None]


class MarkovDecisionProblem:
    """
    A grid world plus one agent roaming it under a stochastic action model.

    Owns the landscape, the agent state, the noise and reward parameters and the
    random generator every stochastic choice draws from. Renderers subscribe to
    state changes; nothing here draws or sleeps.

    Defaults are the Russell & Norvig chapter-17 setup: 4x3 grid, start (0, 0),
    stochastic, noise 0.8/0.2/0/0, rewards +1/-1/-0.04.
    """

    def __init__(
        self,
        grid: Optional[GridWorld] = None,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        self.grid = grid if grid is not None else GridWorld.russell_norvig()
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self._observers: List[Observer] = []
        self.default_settings()

    @classmethod
    def empty(cls, width: int, height: int, **kwargs) -> "MarkovDecisionProblem":
        return cls(grid=GridWorld(width, height), **kwargs)

    def default_settings(self) -> None:
        """Reset every parameter except the landscape to its default value."""
        self.state = AgentState()
        self.deterministic = False
        self.transition = TransitionModel(NoiseModel(), self.rng)
        self.rewards = RewardModel()
        self.total_reward = 0.0
        self._notify("reset")

    # ---------- observers ----------

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self._observers.remove(observer)

    def _notify(self, event: str) -> None:
        for obs in list(self._observers):
            obs(event, self)

    # ---------- acting ----------

    def perform_action(self, action: Action) -> float:
        """
        Perform `action` and return the reward of the cell the agent ends up in.

        When stochastic, the executed action may differ from the intended one.
        """
        self.transition.apply_action(action, self.state, self.grid, self.deterministic)
        r = self.rewards.reward(self.state, self.grid)
        self._notify("move")
        return r

    def reset(self) -> None:
        """Back to the initial position, not terminated, step counter cleared."""
        self.state.reset()
        self._notify("reset")

    def reward(self) -> float:
        return self.rewards.reward(self.state, self.grid)

    def preview_reward(self) -> float:
        return self.rewards.preview_reward(self.state, self.grid)

    # ---------- setters ----------

    def place_cell(self, x: int, y: int, kind: CellKind) -> None:
        self.grid.place_cell(x, y, kind)
        self._notify("place")

    def set_state(self, x: int, y: int) -> None:
        """Move the agent directly to (x, y). Obstacles and out-of-range cells are refused."""
        if not self._standable(x, y, "set_state"):
            return
        self.state.position = (x, y)
        self._notify("state")

    def set_initial_state(self, x: int, y: int) -> None:
        if not self._standable(x, y, "set_initial_state"):
            return
        self.state.initial_position = (x, y)

    def set_deterministic(self) -> None:
        self.deterministic = True

    def set_stochastic(self) -> None:
        self.deterministic = False

    def set_probs_step(
        self, p_perform: float, p_sidestep: float, p_backstep: float, p_no_step: float
    ) -> None:
        """Set the (mis)execution probabilities; normalized with a warning if they do not sum to 1."""
        self.transition.noise = NoiseModel(p_perform, p_sidestep, p_backstep, p_no_step).normalized()

    def probs_step(self) -> Tuple[float, float, float, float]:
        return self.transition.noise.as_tuple()

    def set_pos_reward(self, reward: float) -> None:
        self.rewards.positive = float(reward)

    def set_neg_reward(self, reward: float) -> None:
        self.rewards.negative = float(reward)

    def set_no_reward(self, reward: float) -> None:
        self.rewards.step = float(reward)

    def reset_total_reward(self) -> None:
        self.total_reward = 0.0

    def _standable(self, x: int, y: int, caller: str) -> bool:
        if self.grid.is_passable(x, y):
            return True
        log.warning(f"{caller}: ({x}, {y}) is out of range or an obstacle; ignored")
        return False

    # ---------- read access ----------

    @property
    def width(self) -> int:
        return self.grid.width

    @property
    def height(self) -> int:
        return self.grid.height

    @property
    def position(self) -> Pos:
        return self.state.position

    @property
    def terminated(self) -> bool:
        return self.state.terminated

    @property
    def steps_since_reset(self) -> int:
        return self.state.steps_since_reset

    def cell_at(self, x: int, y: int) -> CellKind:
        return self.grid.cell_at(x, y)

    def render(self) -> str:
        return self.grid.render(agent=self.position)
