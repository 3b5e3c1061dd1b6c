# Shared utilities. Explicit re-exports for a clean public API.

from .io import (
    ensure_dir as ensure_dir,
    load_json as load_json,
    load_table as load_table,
    load_yaml as load_yaml,
    save_json as save_json,
    save_table as save_table,
)
from .logs import setup_logging as setup_logging
from .manifest import Manifest as Manifest, write_manifest as write_manifest
from .timers import Timer as Timer, timed as timed

__all__ = [
    "ensure_dir",
    "load_json",
    "load_table",
    "load_yaml",
    "save_json",
    "save_table",
    "setup_logging",
    "Manifest",
    "write_manifest",
    "Timer",
    "timed",
]
