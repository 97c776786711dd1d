from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from ascendia.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProfileRecord(SQLModel, table=True):
    __tablename__ = "profiles"

    user_id: str = Field(primary_key=True)
    email: Optional[str] = None
    timezone: str = Field(default_factory=lambda: settings.default_timezone)
    archetype_id: Optional[str] = Field(default=None, foreign_key="archetypes.id")
    current_streak: int = 0
    longest_streak: int = 0
    level: int = 1
    successful_days: int = 0
    total_missions_completed: int = 0
    last_success_date: Optional[str] = Field(default=None, max_length=10)
    last_reconciled_date: Optional[str] = Field(default=None, max_length=10)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class MissionRecord(SQLModel, table=True):
    __tablename__ = "missions"
    __table_args__ = (
        UniqueConstraint("user_id", "date_key", "type", name="uq_missions_user_date_type"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(index=True, foreign_key="profiles.user_id")
    date_key: str = Field(index=True, max_length=10)
    type: str
    target_value: int
    status: str = "pending"
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))


class ProgressLogRecord(SQLModel, table=True):
    __tablename__ = "progress_log"

    user_id: str = Field(primary_key=True, foreign_key="profiles.user_id")
    date_key: str = Field(primary_key=True, max_length=10)
    completed_missions: int = 0
    failed: bool = False
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class ArchetypeRecord(SQLModel, table=True):
    __tablename__ = "archetypes"

    id: str = Field(primary_key=True)
    display_name: str
    description: str
    difficulty_multiplier: float = 1.0
    tone: str
    message_style: Optional[str] = None
    sort_order: int = 0
