import logging
import os
from dataclasses import fields
from pathlib import Path
from typing import Optional, Tuple

import yaml

from explore.planner import PlannerConfig
from explore.publisher import Topics


logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).parent / "planner.yaml"
PROFILE_ENV = "MI_EXPLORER_PROFILE"


def load_planner_config(profile=None, path: Optional[Path] = None) -> Tuple[PlannerConfig, Topics]:
    """
    Loads PlannerConfig and Topics from planner.yaml.
    Every profile is layered over 'default'.
    If profile is provided, tries to load that specific profile.
    Otherwise, checks MI_EXPLORER_PROFILE env var, or falls back to 'default'.
    """
    config_path = Path(path) if path is not None else CONFIG_PATH

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    # 1. Try argument
    target_profile = profile

    # 2. Try env var
    if not target_profile:
        target_profile = os.environ.get(PROFILE_ENV)

    # 3. Fallback to default
    if not target_profile or target_profile not in config:
        if target_profile:
            logger.warning("unknown planner profile %r, using default", target_profile)
        target_profile = "default"

    c = dict(config.get("default", {}))
    if target_profile != "default":
        c.update(config[target_profile] or {})

    topics = Topics(**c.pop("topics", {}) or {})

    known = {f.name for f in fields(PlannerConfig)}
    unknown = sorted(set(c) - known)
    if unknown:
        raise ValueError(f"unknown planner settings in {config_path.name}: {', '.join(unknown)}")

    planner_config = PlannerConfig(**c)
    if planner_config.sweep not in ("discretized", "continuous"):
        raise ValueError(f"Unknown sweep strategy: {planner_config.sweep}")
    return planner_config, topics
