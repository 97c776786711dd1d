"""
Domain models for Ascendia.
Stores hand these back regardless of the backing database (SQL or Supabase).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MissionType(str, Enum):
    PUSHUPS = "pushups"
    SQUATS = "squats"
    PLANK = "plank"
    CRUNCHES = "crunches"
    RUN = "run"


class MissionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"  # reserved


class DayOutcome(str, Enum):
    SECURED = "secured"
    BROKEN = "broken"


class ArchetypeTone(str, Enum):
    STRICT = "strict"
    CALM = "calm"
    AGGRESSIVE = "aggressive"
    SILENT = "silent"


class Profile(BaseModel):
    """One row per user. Streak fields only move forward or reset to 0."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: Optional[str] = None
    timezone: str = "UTC"
    archetype_id: Optional[str] = None
    current_streak: int = Field(0, ge=0)
    longest_streak: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    successful_days: int = Field(0, ge=0)
    total_missions_completed: int = Field(0, ge=0)
    last_success_date: Optional[str] = None
    last_reconciled_date: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Mission(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    date_key: str
    type: MissionType
    target_value: int = Field(..., gt=0)
    status: MissionStatus = MissionStatus.PENDING
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Archetype(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
    description: str
    difficulty_multiplier: float = Field(1.0, gt=0)
    tone: ArchetypeTone
    message_style: Optional[str] = None


@dataclass(frozen=True)
class Progression:
    """Snapshot of the profile fields that scale mission difficulty."""

    successful_days: int = 0
    current_streak: int = 0
    level: int = 1

    @classmethod
    def from_profile(cls, profile: Profile) -> "Progression":
        return cls(
            successful_days=profile.successful_days,
            current_streak=profile.current_streak,
            level=profile.level,
        )


@dataclass(frozen=True)
class GeneratedMission:
    type: MissionType
    target_value: int


@dataclass(frozen=True)
class CurrentUser:
    """Identity resolved from the bearer token."""

    id: str
    email: Optional[str] = None
