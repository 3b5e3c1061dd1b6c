from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np
import yaml


def ensure_dir(path: Path | str) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def load_json(path: Path | str) -> Any:
    return json.loads(Path(path).read_text())


def save_json(path: Path | str, payload: Any) -> None:
    p = Path(path)
    ensure_dir(p.parent)
    p.write_text(json.dumps(payload, indent=2))


def load_yaml(path: Path | str) -> Any:
    return yaml.safe_load(Path(path).read_text())


def save_table(path: Path | str, table: np.ndarray) -> Path:
    """
    Persist an action-value table as .npy (shape [width, height, 4]).
    """
    p = Path(path)
    ensure_dir(p.parent)
    np.save(p, table)
    return p


def load_table(path: Path | str) -> np.ndarray:
    table = np.load(Path(path))
    if table.ndim != 3 or table.shape[2] != 4:
        raise ValueError(f"Expected a [width, height, 4] value table, got shape {table.shape}")
    return table
