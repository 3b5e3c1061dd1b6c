from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from gridmdp.core.io import load_yaml

from .gridworld import CellKind, GridWorld
from .mdp import MarkovDecisionProblem
from .transition import NoiseModel

Point = Tuple[int, int]

# -------------------------------
# Config dataclasses
# -------------------------------


@dataclass
class WorldConfig:
    # Landscape (defaults: Russell & Norvig 4x3)
    width: int = 4
    height: int = 3
    obstacles: List[Point] = field(default_factory=lambda: [(1, 1)])
    positive: List[Point] = field(default_factory=lambda: [(3, 2)])
    negative: List[Point] = field(default_factory=lambda: [(3, 1)])
    initial_state: Point = (0, 0)

    # Dynamics
    deterministic: bool = False
    noise: Tuple[float, float, float, float] = (0.8, 0.2, 0.0, 0.0)  # perform, sidestep, backstep, no_step

    # Rewards
    pos_reward: float = 1.0
    neg_reward: float = -1.0
    no_reward: float = -0.04

    seed: Optional[int] = None

    def build(self, rng: Optional[np.random.Generator] = None) -> MarkovDecisionProblem:
        grid = GridWorld(self.width, self.height)
        for kind, cells in (
            (CellKind.OBSTACLE, self.obstacles),
            (CellKind.POSITIVE_TERMINAL, self.positive),
            (CellKind.NEGATIVE_TERMINAL, self.negative),
        ):
            for x, y in cells:
                grid.place_cell(int(x), int(y), kind)

        mdp = MarkovDecisionProblem(grid=grid, rng=rng, seed=self.seed)
        mdp.set_initial_state(*self.initial_state)
        mdp.reset()
        if self.deterministic:
            mdp.set_deterministic()
        mdp.set_probs_step(*self.noise)
        mdp.set_pos_reward(self.pos_reward)
        mdp.set_neg_reward(self.neg_reward)
        mdp.set_no_reward(self.no_reward)
        return mdp


@dataclass
class ValueIterationConfig:
    sweeps: int = 10000  # K
    test_steps: int = 5000  # greedy steps executed after planning
    gamma: float = 0.9


@dataclass
class QLearningConfig:
    iterations: int = 5000
    alpha: float = 0.7
    gamma: float = 0.9
    exploit: float = 0.8  # probability of the greedy action


@dataclass
class RunConfig:
    world: WorldConfig = field(default_factory=WorldConfig)
    value_iteration: ValueIterationConfig = field(default_factory=ValueIterationConfig)
    q_learning: QLearningConfig = field(default_factory=QLearningConfig)

    # Logging / outputs
    log_level: str = "INFO"
    log_file: Optional[str] = None
    out_dir: Optional[str] = None


# -------------------------------
# YAML loading
# -------------------------------


def _points(raw: Any) -> List[Point]:
    return [(int(p[0]), int(p[1])) for p in (raw or [])]


def _known(cls, section: str, raw: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - names)
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {unknown}")
    return dict(raw)


def _world_from_dict(raw: Dict[str, Any]) -> WorldConfig:
    kw = _known(WorldConfig, "world", raw)
    for key in ("obstacles", "positive", "negative"):
        if key in kw:
            kw[key] = _points(kw[key])
    if "initial_state" in kw:
        x, y = kw["initial_state"]
        kw["initial_state"] = (int(x), int(y))
    if "noise" in kw:
        noise = kw["noise"]
        if isinstance(noise, dict):
            noise = NoiseModel(**_known(NoiseModel, "world.noise", noise)).as_tuple()
        kw["noise"] = tuple(float(p) for p in noise)
    return WorldConfig(**kw)


def run_config_from_dict(raw: Dict[str, Any]) -> RunConfig:
    kw = _known(RunConfig, "root", raw or {})
    if "world" in kw:
        kw["world"] = _world_from_dict(kw["world"] or {})
    if "value_iteration" in kw:
        vi = _known(ValueIterationConfig, "value_iteration", kw["value_iteration"] or {})
        kw["value_iteration"] = ValueIterationConfig(**vi)
    if "q_learning" in kw:
        ql = _known(QLearningConfig, "q_learning", kw["q_learning"] or {})
        kw["q_learning"] = QLearningConfig(**ql)
    return RunConfig(**kw)


def load_run_config(path: Optional[str | Path]) -> RunConfig:
    """Read a RunConfig from YAML; a missing path gives the defaults."""
    if path is None:
        return RunConfig()
    return run_config_from_dict(load_yaml(path) or {})
