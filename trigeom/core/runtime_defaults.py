"""
Runtime defaults for the engine and the CLI.

Values can be overridden via environment variables so the host application
does not need to hardcode tuning in multiple entrypoints.
"""

from __future__ import annotations

from dataclasses import dataclass
import os


ENV_STATISTICS_WORKERS = "TRIGEOM_STATISTICS_WORKERS"
ENV_POLL_INTERVAL_MS = "TRIGEOM_POLL_INTERVAL_MS"
ENV_SUBDIVISION_MAX_LEVELS = "TRIGEOM_SUBDIVISION_MAX_LEVELS"
ENV_MESH_DIR = "TRIGEOM_MESH_DIR"

DEFAULT_MESH_DIR = "task_input"


@dataclass(frozen=True)
class RuntimeDefaults:
    statistics_workers: int
    poll_interval_ms: int
    subdivision_max_levels: int
    mesh_dir: str


def _read_int_env(
    env_name: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default

    if min_value is not None and value < min_value:
        return default
    if max_value is not None and value > max_value:
        return default
    return value


def _read_str_env(env_name: str, default: str) -> str:
    raw = os.environ.get(env_name)
    if raw is None:
        return default
    value = str(raw).strip()
    return value or default


def hardware_parallelism() -> int:
    """Number of execution units reported by the OS (1 when unknown)."""
    count = os.cpu_count()
    if count is None or count < 1:
        return 1
    return int(count)


def load_runtime_defaults() -> RuntimeDefaults:
    return RuntimeDefaults(
        statistics_workers=_read_int_env(
            ENV_STATISTICS_WORKERS,
            hardware_parallelism(),
            min_value=1,
            max_value=1024,
        ),
        poll_interval_ms=_read_int_env(ENV_POLL_INTERVAL_MS, 50, min_value=1, max_value=10000),
        subdivision_max_levels=_read_int_env(ENV_SUBDIVISION_MAX_LEVELS, 6, min_value=1, max_value=12),
        mesh_dir=_read_str_env(ENV_MESH_DIR, DEFAULT_MESH_DIR),
    )


DEFAULTS = load_runtime_defaults()
