"""
Request-scoped mission operations. Every entry point reconciles past days
first, then deals with "today" in the user's timezone.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ascendia.db.base import Store
from ascendia.errors import ValidationFailure
from ascendia.models import CurrentUser, Mission, MissionStatus, Profile, Progression
from ascendia.services.archetypes import ArchetypeCatalog
from ascendia.services.calendar import date_key_in_time_zone, is_valid_time_zone, recent_date_keys
from ascendia.services.progression import is_day_secured
from ascendia.services.reconciliation import ReconciliationEngine, SweepResult

logger = logging.getLogger("ascendia")

ROLLUP_DAYS = 7


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TodayMissions:
    date_key: str
    missions: List[Mission]
    profile: Profile


@dataclass
class CompletedMission:
    profile: Profile
    missions: List[Mission]


@dataclass
class DayRollup:
    date_key: str
    total: int = 0
    completed: int = 0


@dataclass
class ProgressRollup:
    profile: Profile
    days: List[DayRollup]

    @property
    def totals(self) -> Dict[str, int]:
        return {
            "total_missions_completed": self.profile.total_missions_completed,
            "current_streak": self.profile.current_streak,
            "longest_streak": self.profile.longest_streak,
            "level": self.profile.level,
        }


class MissionService:
    def __init__(
        self,
        store: Store,
        archetypes: ArchetypeCatalog,
        level_up_every_days: int,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.archetypes = archetypes
        self.engine = ReconciliationEngine(store, level_up_every_days)
        self.clock = clock

    async def load_profile(self, user: CurrentUser) -> Profile:
        """Fetch the caller's profile, creating it on first contact."""
        fields: Dict[str, Any] = {}
        if user.email is not None:
            fields["email"] = user.email
        return await self.store.upsert_profile(user.id, fields)

    async def reconciled_profile(self, user: CurrentUser) -> Profile:
        profile = await self.load_profile(user)
        return await self.engine.reconcile_profile(profile, self.archetypes, self.clock())

    async def update_profile(
        self,
        user: CurrentUser,
        timezone_name: Optional[str] = None,
        archetype_id: Optional[str] = None,
    ) -> Profile:
        fields: Dict[str, Any] = {}
        if user.email is not None:
            fields["email"] = user.email
        if timezone_name:
            if not is_valid_time_zone(timezone_name):
                raise ValidationFailure(f"Unknown timezone: {timezone_name}")
            fields["timezone"] = timezone_name
        if archetype_id:
            if not await self.archetypes.is_valid(archetype_id):
                raise ValidationFailure("Unknown archetypeId")
            fields["archetype_id"] = archetype_id
        return await self.store.upsert_profile(user.id, fields)

    async def delete_account(self, user: CurrentUser) -> None:
        await self.store.delete_user(user.id)
        logger.info("account_deleted", extra={"user_id": user.id})

    async def today(self, user: CurrentUser) -> TodayMissions:
        profile = await self.load_profile(user)
        date_key = date_key_in_time_zone(self.clock(), profile.timezone)
        multiplier = await self.archetypes.resolve_difficulty_multiplier(profile.archetype_id)

        profile = await self.engine.reconcile(profile, date_key, multiplier)
        missions = await self.engine.ensure_missions_for_date(
            user.id, date_key, multiplier, Progression.from_profile(profile)
        )
        return TodayMissions(date_key=date_key, missions=missions, profile=profile)

    async def complete_mission(self, user: CurrentUser, mission_id: str) -> CompletedMission:
        """
        Mark one mission complete and, if that finishes its day, record the day.

        Safe to call repeatedly: an already-completed mission changes nothing.
        """
        await self.store.get_mission(mission_id, user.id)
        profile = await self.reconciled_profile(user)

        # Re-read: reconciliation may just have closed the mission's day.
        mission = await self.store.get_mission(mission_id, user.id)
        if mission.status == MissionStatus.FAILED:
            raise ValidationFailure("Mission day already closed")

        if mission.status != MissionStatus.COMPLETED:
            await self.store.update_mission_status(
                mission.id, user.id, MissionStatus.COMPLETED, completed_at=self.clock()
            )
            # Read-then-write; concurrent completions for one user may under-count.
            await self.store.upsert_profile(
                user.id, {"total_missions_completed": profile.total_missions_completed + 1}
            )
            logger.info(
                "mission_completed",
                extra={"user_id": user.id, "mission_id": mission.id, "date_key": mission.date_key},
            )

        profile = await self.load_profile(user)
        missions = await self.store.list_missions(user.id, mission.date_key)

        if is_day_secured(missions) and profile.last_success_date != mission.date_key:
            profile = await self.engine.record_secured_day(
                profile, mission.date_key, len(missions)
            )

        return CompletedMission(profile=profile, missions=missions)

    async def last7(self, user: CurrentUser) -> ProgressRollup:
        profile = await self.load_profile(user)
        today_key = date_key_in_time_zone(self.clock(), profile.timezone)
        multiplier = await self.archetypes.resolve_difficulty_multiplier(profile.archetype_id)
        profile = await self.engine.reconcile(profile, today_key, multiplier)

        date_keys = recent_date_keys(today_key, ROLLUP_DAYS)
        by_date = {key: DayRollup(date_key=key) for key in date_keys}
        for mission in await self.store.list_missions_for_dates(user.id, date_keys):
            day = by_date.get(mission.date_key)
            if day is None:
                continue
            day.total += 1
            if mission.status == MissionStatus.COMPLETED:
                day.completed += 1

        return ProgressRollup(profile=profile, days=[by_date[key] for key in date_keys])

    async def reconcile_user(self, user_id: str) -> Profile:
        return await self.engine.reconcile_user(user_id, self.archetypes, self.clock())

    async def reconcile_all(self, page_size: int) -> SweepResult:
        return await self.engine.reconcile_all(self.archetypes, self.clock(), page_size)
