"""
policy_settings.py: Organization investment policy for the decision framework
==============================================================================
Values come from the environment (optionally a .env file next to this module)
and fall back to DEFAULT_POLICY. The result is a plain value passed into
decision_framework.calculate_decision_metrics; nothing here is global state.

    ROIC_HURDLE_RATE=12                  # percent
    ROIC_LIGHT_TOUCH_THRESHOLD=50000     # TUFI at or below -> light touch
    ROIC_BOARD_REVIEW_THRESHOLD=2000000  # TUFI at or above -> board review
"""

import logging
import math
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_HURDLE_RATE = "ROIC_HURDLE_RATE"
ENV_LIGHT_TOUCH_THRESHOLD = "ROIC_LIGHT_TOUCH_THRESHOLD"
ENV_BOARD_REVIEW_THRESHOLD = "ROIC_BOARD_REVIEW_THRESHOLD"

DEFAULT_ENV_FILE = Path(__file__).resolve().parent / ".env"


@dataclass(frozen=True)
class PolicySettings:
    hurdle_rate: float = 12.0  # percent
    light_touch_threshold: float = 50_000.0
    board_review_threshold: float = 2_000_000.0

    def __post_init__(self):
        if self.light_touch_threshold < 0 or self.board_review_threshold < 0:
            raise ValueError("Review thresholds must be non-negative")

    @property
    def hurdle_rate_decimal(self) -> float:
        return self.hurdle_rate / 100

    def to_dict(self):
        return asdict(self)


DEFAULT_POLICY = PolicySettings()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        value = None
    if value is None or not math.isfinite(value):
        logger.warning("Ignoring %s=%r (not a finite number); using %s", name, raw, default)
        return default
    return value


def load_policy_settings(env_file: Optional[Union[str, Path]] = None) -> PolicySettings:
    """
    Build PolicySettings from the environment after loading `env_file`
    (default: .env beside this module). Already-set variables are not
    overridden by the file. Bad values are logged and replaced by defaults.
    """
    load_dotenv(dotenv_path=env_file or DEFAULT_ENV_FILE)

    hurdle = _env_float(ENV_HURDLE_RATE, DEFAULT_POLICY.hurdle_rate)
    light = _env_float(ENV_LIGHT_TOUCH_THRESHOLD, DEFAULT_POLICY.light_touch_threshold)
    board = _env_float(ENV_BOARD_REVIEW_THRESHOLD, DEFAULT_POLICY.board_review_threshold)

    if light < 0 or board < 0:
        logger.warning("Negative review thresholds in environment; using defaults")
        light = DEFAULT_POLICY.light_touch_threshold
        board = DEFAULT_POLICY.board_review_threshold

    return PolicySettings(
        hurdle_rate=hurdle,
        light_touch_threshold=light,
        board_review_threshold=board,
    )
