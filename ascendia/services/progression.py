"""
Progression rules: difficulty scaling and the per-day streak transition.

Both the reconciliation sweep (past days) and the completion handler (today)
go through next_streak_state, so a day is scored the same way no matter which
path records it.
"""

import math
from typing import Any, Dict, Iterable, Optional

from ascendia.models import DayOutcome, Mission, MissionStatus, Profile, Progression
from ascendia.services.calendar import diff_days

MIN_PROGRESSION_MULTIPLIER = 0.9
MAX_PROGRESSION_MULTIPLIER = 1.6

SUCCESSFUL_DAYS_CAP = 0.35
STREAK_MOMENTUM_CAP = 0.10
LEVEL_SMOOTHING_CAP = 0.10

# Days/levels needed to reach ~63% of each cap.
SUCCESSFUL_DAYS_SCALE = 45.0
STREAK_MOMENTUM_SCALE = 14.0
LEVEL_SMOOTHING_SCALE = 6.0


def _saturating(value: float, cap: float, scale: float) -> float:
    return cap * (1.0 - math.exp(-max(0.0, value) / scale))


def progression_multiplier(progression: Optional[Progression]) -> float:
    """
    Smooth difficulty factor in [0.9, 1.6] that grows with a user's history.

    Combines a successful-days term (up to +35%), a streak-momentum term
    (up to +10%) and a level-smoothing term (up to +10%). Each term
    saturates exponentially so targets never jump between adjacent days.
    """
    if progression is None:
        return 1.0

    days_term = 1.0 + _saturating(
        progression.successful_days, SUCCESSFUL_DAYS_CAP, SUCCESSFUL_DAYS_SCALE
    )
    streak_term = 1.0 + _saturating(
        progression.current_streak, STREAK_MOMENTUM_CAP, STREAK_MOMENTUM_SCALE
    )
    level_term = 1.0 + _saturating(
        progression.level - 1, LEVEL_SMOOTHING_CAP, LEVEL_SMOOTHING_SCALE
    )

    combined = days_term * streak_term * level_term
    return min(MAX_PROGRESSION_MULTIPLIER, max(MIN_PROGRESSION_MULTIPLIER, combined))


def level_for(successful_days: int, level_up_every_days: int) -> int:
    return 1 + successful_days // level_up_every_days


def is_day_secured(missions: Iterable[Mission]) -> bool:
    missions = list(missions)
    return bool(missions) and all(m.status == MissionStatus.COMPLETED for m in missions)


def next_streak_state(
    profile: Profile,
    date_key: str,
    outcome: DayOutcome,
    level_up_every_days: int,
) -> Dict[str, Any]:
    """
    Profile fields that change when `date_key` ends with `outcome`.

    An empty dict means the transition is already recorded (or there is
    nothing to reset), which is what makes replays idempotent.
    """
    if outcome == DayOutcome.BROKEN:
        if profile.current_streak == 0:
            return {}
        return {"current_streak": 0}

    last = profile.last_success_date
    if last == date_key:
        return {}

    day_diff = diff_days(date_key, last) if last else None
    next_streak = profile.current_streak + 1 if day_diff == 1 else 1
    successful_days = profile.successful_days + 1

    return {
        "current_streak": next_streak,
        "longest_streak": max(profile.longest_streak, next_streak),
        "successful_days": successful_days,
        "level": level_for(successful_days, level_up_every_days),
        "last_success_date": date_key,
    }
