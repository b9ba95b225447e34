"""
skillswap.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for soft settings: community identity and the
defaults applied when new swaps and skill entries are built.  Secrets and
connection strings (``DATABASE_URL``, ``JWT_SECRET``) come from the
environment instead.

Usage::

    from skillswap.config import load_config

    cfg = load_config()                       # reads ./config.yaml
    print(cfg.default_swap_duration_minutes)  # 60
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from skillswap.constants import (
    DEFAULT_MEETING_TYPE,
    DEFAULT_OFFERED_LEVEL,
    DEFAULT_SWAP_DURATION_MINUTES,
    DEFAULT_WANTED_LEVEL,
    MeetingType,
    SkillLevel,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SkillSwapConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Every field has a default so services and tests can run with a bare
    ``SkillSwapConfig()``.
    """

    # Identity
    community_name: str = "SkillSwap"

    # Defaults for new swaps
    default_swap_duration_minutes: int = DEFAULT_SWAP_DURATION_MINUTES
    default_meeting_type: MeetingType = DEFAULT_MEETING_TYPE

    # Defaults for new skill entries
    default_offered_level: SkillLevel = DEFAULT_OFFERED_LEVEL
    default_wanted_level: SkillLevel = DEFAULT_WANTED_LEVEL

    # Dashboard "recent" window
    recent_window_days: int = 30


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> SkillSwapConfig:
    """Read *path* and return a :class:`SkillSwapConfig` instance.

    Only ``community_name`` is required; the rest fall back to the
    built-in defaults.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If a level or meeting type is not a known value.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return SkillSwapConfig(
        community_name=raw["community_name"],
        default_swap_duration_minutes=int(
            raw.get("default_swap_duration_minutes", DEFAULT_SWAP_DURATION_MINUTES)
        ),
        default_meeting_type=MeetingType(
            raw.get("default_meeting_type", DEFAULT_MEETING_TYPE.value)
        ),
        default_offered_level=SkillLevel(
            raw.get("default_offered_level", DEFAULT_OFFERED_LEVEL.value)
        ),
        default_wanted_level=SkillLevel(
            raw.get("default_wanted_level", DEFAULT_WANTED_LEVEL.value)
        ),
        recent_window_days=int(raw.get("recent_window_days", 30)),
    )
