"""
locova.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for tuning values (point amounts, radius and
window sizes, debounce intervals).  Secrets and connection strings stay
in the environment (``.env``).

Usage::

    from locova.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.app_name)          # "Locova"
    print(cfg.like_points)       # 2
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from locova.constants import (
    DEFAULT_COMMENT_POINTS,
    DEFAULT_LIKE_POINTS,
    DEFAULT_SUBMIT_POINTS,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LocovaConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    app_name: str = "Locova"

    # Feed / search
    default_radius_km: float = 20.0
    snapshot_batch_limit: int = 60

    # Leaderboard
    leaderboard_limit: int = 10

    # Points
    submit_points: int = DEFAULT_SUBMIT_POINTS
    like_points: int = DEFAULT_LIKE_POINTS
    comment_points: int = DEFAULT_COMMENT_POINTS

    # Debounce windows (milliseconds)
    place_search_debounce_ms: int = 350
    realtime_debounce_ms: int = 250


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> LocovaConfig:
    """Read *path* and return a :class:`LocovaConfig` instance.

    Keys missing from the file fall back to the dataclass defaults.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a point amount or window size is not positive.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = LocovaConfig()
    cfg = LocovaConfig(
        app_name=str(raw.get("app_name", defaults.app_name)),
        default_radius_km=float(raw.get("default_radius_km", defaults.default_radius_km)),
        snapshot_batch_limit=int(raw.get("snapshot_batch_limit", defaults.snapshot_batch_limit)),
        leaderboard_limit=int(raw.get("leaderboard_limit", defaults.leaderboard_limit)),
        submit_points=int(raw.get("submit_points", defaults.submit_points)),
        like_points=int(raw.get("like_points", defaults.like_points)),
        comment_points=int(raw.get("comment_points", defaults.comment_points)),
        place_search_debounce_ms=int(
            raw.get("place_search_debounce_ms", defaults.place_search_debounce_ms)
        ),
        realtime_debounce_ms=int(
            raw.get("realtime_debounce_ms", defaults.realtime_debounce_ms)
        ),
    )

    for name in (
        "submit_points", "like_points", "comment_points",
        "leaderboard_limit", "snapshot_batch_limit",
    ):
        if getattr(cfg, name) <= 0:
            raise ValueError(f"{name} must be positive, got {getattr(cfg, name)}")
    if cfg.default_radius_km <= 0:
        raise ValueError(
            f"default_radius_km must be positive, got {cfg.default_radius_km}"
        )

    return cfg
