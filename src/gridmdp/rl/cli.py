from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
import typer

from gridmdp.core.io import ensure_dir, load_json, save_json, save_table
from gridmdp.core.logs import setup_logging
from gridmdp.core.manifest import write_manifest
from gridmdp.core.timers import timed

from .config import RunConfig, load_run_config
from .mdp import MarkovDecisionProblem
from .policy import Policy, format_policy, policy_from_json, policy_lines, policy_to_json
from .q_learning import q_learning
from .value_iteration import execute_policy, value_iteration

app = typer.Typer(add_completion=False)
log = logging.getLogger("gridmdp.rl")

ConfigOpt = typer.Option(None, "--config", help="YAML run config")
SeedOpt = typer.Option(None, "--seed", help="RNG seed (overrides config)")
ModeOpt = typer.Option(None, "--deterministic/--stochastic", help="Action model (overrides config)")
OutOpt = typer.Option(None, "--out", help="Write policy/values/manifest here")


def _prepare(config: Optional[Path], seed: Optional[int], deterministic: Optional[bool]):
    cfg: RunConfig = load_run_config(config)
    setup_logging(cfg.log_level, cfg.log_file)
    if seed is not None:
        cfg.world.seed = seed
    if deterministic is not None:
        cfg.world.deterministic = deterministic
    return cfg, cfg.world.build()


def _report(name: str, mdp: MarkovDecisionProblem, pi: Policy, total: float, verbose: bool) -> None:
    typer.echo(name)
    if verbose:
        for line in policy_lines(pi):
            typer.echo(line)
    typer.echo(format_policy(pi, mdp.grid))
    typer.echo(f"Total Reward: {total:.3f}")


def _save(
    out: Optional[str],
    tag: str,
    Q: np.ndarray,
    pi: Policy,
    params: Dict[str, Any],
    cfg: RunConfig,
    config: Optional[Path],
) -> None:
    if not out:
        return
    out_dir = ensure_dir(Path(out) / tag)
    values_path = save_table(out_dir / "values.npy", Q)
    policy_path = out_dir / "policy.json"
    save_json(policy_path, policy_to_json(pi))
    write_manifest(
        out_dir,
        f"rl/{tag}",
        "0.1.0",
        str(config) if config else None,
        {**params, "world": asdict(cfg.world)},
        {"values": str(values_path), "policy": str(policy_path)},
        cfg.world.seed,
    )
    log.info(f"[rl/{tag}] wrote {values_path} and {policy_path}")


def _run_vi(cfg: RunConfig, mdp: MarkovDecisionProblem, config, out, verbose) -> None:
    vi = cfg.value_iteration
    with timed("value iteration", log):
        Q, pi, info = value_iteration(mdp, sweeps=vi.sweeps, test_steps=vi.test_steps, gamma=vi.gamma)
    _report("Value Iteration", mdp, pi, mdp.total_reward, verbose)
    _save(out, "value_iteration", Q, pi, {**asdict(vi), **info}, cfg, config)


def _run_ql(cfg: RunConfig, mdp: MarkovDecisionProblem, config, out, verbose) -> None:
    ql = cfg.q_learning
    with timed("q-learning", log):
        Q, pi, info = q_learning(
            mdp, iterations=ql.iterations, alpha=ql.alpha, gamma=ql.gamma, exploit=ql.exploit
        )
    _report("Q-Learning", mdp, pi, mdp.total_reward, verbose)
    _save(out, "q_learning", Q, pi, {**asdict(ql), **info}, cfg, config)


@app.command()
def vi(
    config: Optional[Path] = ConfigOpt,
    seed: Optional[int] = SeedOpt,
    deterministic: Optional[bool] = ModeOpt,
    sweeps: Optional[int] = typer.Option(None, help="Value-iteration sweeps K"),
    test_steps: Optional[int] = typer.Option(None, help="Greedy steps after planning"),
    out: Optional[str] = OutOpt,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List the best action per cell"),
):
    """Plan with value iteration, then run the greedy policy."""
    cfg, mdp = _prepare(config, seed, deterministic)
    if sweeps is not None:
        cfg.value_iteration.sweeps = sweeps
    if test_steps is not None:
        cfg.value_iteration.test_steps = test_steps
    _run_vi(cfg, mdp, config, out or cfg.out_dir, verbose)


@app.command()
def qlearn(
    config: Optional[Path] = ConfigOpt,
    seed: Optional[int] = SeedOpt,
    deterministic: Optional[bool] = ModeOpt,
    iterations: Optional[int] = typer.Option(None, help="Q-learning steps"),
    out: Optional[str] = OutOpt,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="List the best action per cell"),
):
    """Learn online with Q-learning."""
    cfg, mdp = _prepare(config, seed, deterministic)
    if iterations is not None:
        cfg.q_learning.iterations = iterations
    _run_ql(cfg, mdp, config, out or cfg.out_dir, verbose)


@app.command()
def both(
    config: Optional[Path] = ConfigOpt,
    seed: Optional[int] = SeedOpt,
    deterministic: Optional[bool] = ModeOpt,
    out: Optional[str] = OutOpt,
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Value iteration then Q-learning on the same world, reporting each total reward."""
    if deterministic is None and config is None:
        deterministic = True
    cfg, mdp = _prepare(config, seed, deterministic)
    out = out or cfg.out_dir
    _run_vi(cfg, mdp, config, out, verbose)
    mdp.reset_total_reward()
    _run_ql(cfg, mdp, config, out, verbose)


@app.command()
def replay(
    policy: Path = typer.Argument(..., help="policy.json written by --out"),
    config: Optional[Path] = ConfigOpt,
    seed: Optional[int] = SeedOpt,
    deterministic: Optional[bool] = ModeOpt,
    steps: int = typer.Option(100, help="Actions to execute"),
):
    """Execute a saved policy, restarting on termination."""
    cfg, mdp = _prepare(config, seed, deterministic)
    pi = policy_from_json(load_json(policy))
    missing = [(x, y) for x, y in mdp.grid.cells() if (x, y) not in pi]
    if missing:
        raise typer.BadParameter(f"policy has no action for cells {missing}", param_hint="policy")
    total = execute_policy(mdp, pi, steps)
    typer.echo(format_policy(pi, mdp.grid))
    typer.echo(f"Total Reward: {total:.3f}")


if __name__ == "__main__":
    app()
