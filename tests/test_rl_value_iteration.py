import logging

import pytest

from gridmdp.rl.actions import Action
from gridmdp.rl.gridworld import CellKind, GridWorld
from gridmdp.rl.mdp import MarkovDecisionProblem
from gridmdp.rl.value_iteration import Phase, ValueIterationEngine, execute_policy, value_iteration


def test_value_iteration_policy_on_canonical_world():
    mdp = MarkovDecisionProblem(seed=0)
    Q, pi, info = value_iteration(mdp, sweeps=1000, test_steps=0, deterministic=True, gamma=0.9)

    assert Q.shape == (4, 3, 4)
    assert info["sweeps"] == 1000
    # toward the positive terminal along the top row
    assert pi[(0, 2)] is Action.RIGHT
    assert pi[(2, 2)] is Action.RIGHT
    # away from the negative terminal
    assert pi[(3, 0)] is Action.LEFT
    assert pi[(2, 1)] is not Action.RIGHT

    # Greedy rollout reaches the +1 cell quickly
    mdp.reset()
    G = 0.0
    for t in range(30):
        G += mdp.perform_action(pi[mdp.position])
        if mdp.terminated:
            assert mdp.position == (3, 2)
            assert t + 1 <= 8
            assert G > 0.6
            return
    assert False, "Greedy policy failed to reach terminal within 30 steps"


def test_sweeps_are_exact_and_probes_leave_agent_alone():
    mdp = MarkovDecisionProblem(seed=1)
    mdp.set_state(2, 0)
    mdp.perform_action(Action.LEFT)
    before = (mdp.position, mdp.terminated, mdp.steps_since_reset)

    engine = ValueIterationEngine(mdp, sweeps=7, gamma=0.7)
    assert engine.phase is Phase.NOT_STARTED
    engine.sweep()
    assert engine.phase is Phase.SWEEPING
    engine.run()
    assert engine.phase is Phase.CONVERGED
    assert engine.sweeps_done == 7
    assert (mdp.position, mdp.terminated, mdp.steps_since_reset) == before


def test_stochastic_planning_with_no_step_noise_is_clean(caplog):
    mdp = MarkovDecisionProblem(seed=2)
    mdp.set_probs_step(0.7, 0.2, 0.0, 0.1)
    with caplog.at_level(logging.ERROR, logger="gridmdp"):
        Q, pi, _ = value_iteration(mdp, sweeps=50, test_steps=0, gamma=0.9)
    assert not caplog.records
    assert Q[0, 0].max() != 0.0


def test_execute_policy_accumulates_total_reward():
    mdp = MarkovDecisionProblem(seed=0)
    mdp.set_deterministic()
    pi = {(x, y): Action.UP for x in range(4) for y in range(3)}
    pi.update({(0, 2): Action.RIGHT, (1, 2): Action.RIGHT, (2, 2): Action.RIGHT})
    # (0,0)->(0,1)->(0,2)->(1,2)->(2,2)->(3,2), then restart and one more step
    total = execute_policy(mdp, pi, steps=6)
    assert total == pytest.approx(4 * -0.04 + 1.0 - 0.04)
    assert mdp.total_reward == pytest.approx(total)
    assert mdp.position == (0, 1)


def test_rejects_bad_hyperparameters():
    mdp = MarkovDecisionProblem(seed=0)
    with pytest.raises(ValueError):
        ValueIterationEngine(mdp, sweeps=-1)
    with pytest.raises(ValueError):
        ValueIterationEngine(mdp, gamma=1.5)


def test_one_sweep_matches_hand_computed_backups():
    # 3x1 corridor: (0,0) (1,0) empty, (2,0) +1. Sweep order is (0,0), (1,0), (2,0)
    # and UP, RIGHT, DOWN, LEFT within a cell.
    grid = GridWorld(3, 1)
    grid.place_cell(2, 0, CellKind.POSITIVE_TERMINAL)
    mdp = MarkovDecisionProblem(grid=grid, seed=0)
    mdp.set_deterministic()
    mdp.set_probs_step(0.6, 0.2, 0.2, 0.0)
    engine = ValueIterationEngine(mdp, sweeps=1, gamma=0.5)
    engine.sweep()
    Q = engine.table

    # every move from (0,0) costs -0.04 and sees only zero rows
    assert Q[0, 0] == pytest.approx([-0.04, -0.04, -0.04, -0.04])

    # UP reads (0,0), already updated this sweep, through the sidestep share
    assert Q[1, 0, Action.UP] == pytest.approx(-0.04 + 0.5 * (0.1 * -0.04))
    # RIGHT enters the terminal (worth 0 as a successor), backstep lands on (0,0)
    assert Q[1, 0, Action.RIGHT] == pytest.approx(1.0 + 0.5 * (0.2 * -0.04))
    # DOWN reads the RIGHT entry written just before it
    v10 = 0.996
    assert Q[1, 0, Action.DOWN] == pytest.approx(
        -0.04 + 0.5 * (0.6 * v10 + 0.1 * -0.04 + 0.1 * 0.0 + 0.2 * v10)
    )
    assert Q[1, 0, Action.LEFT] == pytest.approx(-0.04 + 0.5 * (0.6 * -0.04 + 0.1 * v10 + 0.1 * v10))

    # the terminal's own row is computed and non-zero...
    assert Q[2, 0, Action.UP] == pytest.approx(1.0 + 0.5 * (0.1 * v10))
    # ...but it still contributes nothing when it is the successor
    assert engine.backup(1, 0, Action.RIGHT) == pytest.approx(
        1.0 + 0.5 * (0.6 * 0.0 + 0.1 * v10 + 0.1 * v10 + 0.2 * -0.04)
    )
