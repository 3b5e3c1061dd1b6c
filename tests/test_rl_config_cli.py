from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from gridmdp.core.io import load_json, load_table
from gridmdp.rl.actions import Action
from gridmdp.rl import cli
from gridmdp.rl.cli import app
from gridmdp.rl.config import RunConfig, load_run_config, run_config_from_dict
from gridmdp.rl.gridworld import CellKind

CONFIG = Path(__file__).resolve().parents[1] / "configs" / "rl" / "gridworld.yaml"


def test_defaults_build_canonical_world():
    mdp = RunConfig().world.build()
    assert (mdp.width, mdp.height) == (4, 3)
    assert mdp.cell_at(1, 1) is CellKind.OBSTACLE
    assert mdp.cell_at(3, 2) is CellKind.POSITIVE_TERMINAL
    assert not mdp.deterministic
    assert mdp.probs_step() == pytest.approx((0.8, 0.2, 0.0, 0.0))


def test_shipped_config_loads():
    cfg = load_run_config(CONFIG)
    assert cfg.world.deterministic
    assert cfg.value_iteration.sweeps == 10000
    assert cfg.q_learning.exploit == pytest.approx(0.8)


def test_custom_world_from_yaml(tmp_path: Path):
    p = tmp_path / "world.yaml"
    p.write_text(
        yaml.safe_dump(
            {
                "world": {
                    "width": 5,
                    "height": 2,
                    "obstacles": [[2, 0]],
                    "positive": [[4, 1]],
                    "negative": [],
                    "initial_state": [1, 1],
                    "noise": [2, 1, 1, 0],
                    "no_reward": -0.1,
                    "seed": 3,
                },
                "q_learning": {"iterations": 10},
            }
        )
    )
    cfg = load_run_config(p)
    mdp = cfg.world.build()
    assert mdp.position == (1, 1)
    assert mdp.cell_at(2, 0) is CellKind.OBSTACLE
    assert mdp.probs_step() == pytest.approx((0.5, 0.25, 0.25, 0.0))
    assert mdp.rewards.step == pytest.approx(-0.1)
    assert cfg.q_learning.iterations == 10
    assert cfg.q_learning.alpha == pytest.approx(0.7)


def test_unknown_keys_are_rejected():
    with pytest.raises(ValueError):
        run_config_from_dict({"world": {"widht": 3}})
    with pytest.raises(ValueError):
        run_config_from_dict({"sweeps": 3})
    with pytest.raises(ValueError):
        run_config_from_dict({"world": {"noise": {"perform": 0.9, "slip": 0.1}}})


def test_cli_vi_writes_outputs(tmp_path: Path):
    runner = CliRunner()
    res = runner.invoke(
        app,
        ["vi", "--sweeps", "300", "--test-steps", "20", "--deterministic", "--seed", "0", "--out", str(tmp_path)],
    )
    assert res.exit_code == 0, res.output
    assert "Value Iteration" in res.output
    assert "Total Reward" in res.output

    out = tmp_path / "value_iteration"
    assert load_table(out / "values.npy").shape == (4, 3, 4)
    policy = load_json(out / "policy.json")
    assert policy["0,2"] == Action.RIGHT.name
    assert load_json(out / "manifest.json")["name"] == "rl/value_iteration"


def test_cli_both_reports_each_algorithm(tmp_path: Path):
    raw = yaml.safe_load(CONFIG.read_text())
    raw["value_iteration"].update({"sweeps": 200, "test_steps": 100})
    raw["q_learning"]["iterations"] = 500
    p = tmp_path / "small.yaml"
    p.write_text(yaml.safe_dump(raw))

    res = CliRunner().invoke(app, ["both", "--config", str(p), "--seed", "1", "-v"])
    assert res.exit_code == 0, res.output
    assert res.output.count("Total Reward") == 2
    assert "Q-Learning" in res.output
    assert "Best action at 0,0:" in res.output


def _record_modes(monkeypatch):
    seen = []
    monkeypatch.setattr(cli, "_run_vi", lambda cfg, mdp, *a: seen.append(("vi", mdp.deterministic)))
    monkeypatch.setattr(cli, "_run_ql", lambda cfg, mdp, *a: seen.append(("ql", mdp.deterministic)))
    return seen


def test_cli_both_keeps_stochastic_mode_from_config(tmp_path: Path, monkeypatch):
    raw = yaml.safe_load(CONFIG.read_text())
    raw["world"]["deterministic"] = False
    p = tmp_path / "stochastic.yaml"
    p.write_text(yaml.safe_dump(raw))

    seen = _record_modes(monkeypatch)
    runner = CliRunner()
    res = runner.invoke(app, ["both", "--config", str(p)])
    assert res.exit_code == 0, res.output
    assert seen == [("vi", False), ("ql", False)]

    seen.clear()
    res = runner.invoke(app, ["both", "--config", str(p), "--deterministic"])
    assert res.exit_code == 0, res.output
    assert seen == [("vi", True), ("ql", True)]

    # no config and no flag: deterministic, like the classic demo
    seen.clear()
    res = runner.invoke(app, ["both"])
    assert res.exit_code == 0, res.output
    assert seen == [("vi", True), ("ql", True)]


def test_cli_replay_runs_saved_policy(tmp_path: Path):
    runner = CliRunner()
    res = runner.invoke(
        app, ["vi", "--sweeps", "300", "--test-steps", "0", "--deterministic", "--seed", "0", "--out", str(tmp_path)]
    )
    assert res.exit_code == 0, res.output

    policy = tmp_path / "value_iteration" / "policy.json"
    res = runner.invoke(app, ["replay", str(policy), "--deterministic", "--steps", "8"])
    assert res.exit_code == 0, res.output
    line = next(ln for ln in res.output.splitlines() if ln.startswith("Total Reward:"))
    total = float(line.split(":")[1])
    # reaches the +1 cell within the first eight steps
    assert total > 0.6

    p = tmp_path / "partial.json"
    p.write_text('{"0,0": "up"}')
    res = runner.invoke(app, ["replay", str(p)])
    assert res.exit_code != 0
