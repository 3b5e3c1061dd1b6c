#!/usr/bin/env python
"""
Value iteration and Q-learning on a stochastic grid world.

  python scripts/rl/run_mdp.py both --config configs/rl/gridworld.yaml
  python scripts/rl/run_mdp.py vi --sweeps 1000 --stochastic --seed 0 --out outputs/rl
  python scripts/rl/run_mdp.py qlearn --iterations 5000 -v
"""
from gridmdp.rl.cli import app

if __name__ == "__main__":
    app()
