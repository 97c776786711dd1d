"""
Deterministic daily mission generation.

Missions for a date are a pure function of (date_key, difficulty multiplier,
progression snapshot): the type selection and per-mission noise come from a
random stream seeded by the date, so regenerating a day reproduces the rows
that may already be stored for it.
"""

import hashlib
import math
import random
from typing import List, Optional

from ascendia.models import GeneratedMission, MissionType, Progression
from ascendia.services.progression import progression_multiplier

MISSION_TYPES: tuple = (
    MissionType.PUSHUPS,
    MissionType.SQUATS,
    MissionType.PLANK,
    MissionType.CRUNCHES,
    MissionType.RUN,
)

BASE_TARGETS = {
    MissionType.PUSHUPS: 20,
    MissionType.SQUATS: 30,
    MissionType.PLANK: 60,
    MissionType.CRUNCHES: 25,
    MissionType.RUN: 15,
}

DEFAULT_MISSION_COUNT = 4
MIN_MISSION_COUNT = 3
MAX_MISSION_COUNT = 5

GENTLE_RAMP_MAX = 0.08
NOISE_LOW = 0.9
NOISE_SPAN = 0.2


def hash_to_seed(value: str) -> int:
    """Stable 32-bit seed; the builtin hash() is salted per process."""
    digest = hashlib.sha256(value.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


def _pick_unique(rng: random.Random, items: tuple, count: int) -> list:
    pool = list(items)
    selected = []
    while len(selected) < count and pool:
        idx = math.floor(rng.random() * len(pool))
        selected.append(pool.pop(idx))
    return selected


def gentle_ramp(date_key: str) -> float:
    """Date-derived factor in [1.0, 1.08) from a hash independent of the seed."""
    return 1.0 + (hash_to_seed(f"ramp:{date_key}") % 365) / 365 * GENTLE_RAMP_MAX


def _round_half_up(value: float, step: int) -> int:
    return int(math.floor(value / step + 0.5)) * step


def round_target(mission_type: MissionType, value: float) -> int:
    if mission_type == MissionType.PLANK:
        return max(20, _round_half_up(value, 10))
    return max(5, _round_half_up(value, 5))


def generate_daily_missions(
    date_key: str,
    difficulty_multiplier: float,
    progression: Optional[Progression] = None,
    count: int = DEFAULT_MISSION_COUNT,
) -> List[GeneratedMission]:
    rng = random.Random(hash_to_seed(date_key))
    chosen = _pick_unique(
        rng, MISSION_TYPES, min(MAX_MISSION_COUNT, max(MIN_MISSION_COUNT, count))
    )

    effective = difficulty_multiplier * progression_multiplier(progression)
    ramp = gentle_ramp(date_key)

    missions = []
    for mission_type in chosen:
        noise = NOISE_LOW + rng.random() * NOISE_SPAN
        target = round_target(
            mission_type, BASE_TARGETS[mission_type] * effective * ramp * noise
        )
        missions.append(GeneratedMission(type=mission_type, target_value=target))
    return missions
