"""
Day reconciliation: replays every day between a user's last processed day
and yesterday, in order, so missed days break the streak and completed days
are counted exactly once.

Each step re-reads or uses the row returned by the previous write; the
profile is threaded through the loop rather than mutated in place. Every
write is guarded by a comparison against persisted state, so running the
walk again (or concurrently) converges on the same result.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ascendia.db.base import Store
from ascendia.models import (
    DayOutcome,
    Mission,
    MissionStatus,
    Profile,
    Progression,
)
from ascendia.services.archetypes import ArchetypeCatalog
from ascendia.services.calendar import add_days, date_key_in_time_zone, diff_days
from ascendia.services.mission_engine import generate_daily_missions
from ascendia.services.progression import is_day_secured, next_streak_state

logger = logging.getLogger("ascendia")

DEFAULT_SWEEP_PAGE_SIZE = 500


@dataclass
class SweepResult:
    processed: int = 0
    reconciled: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "processed": self.processed,
            "reconciled": self.reconciled,
            "errors": list(self.errors),
        }


class ReconciliationEngine:
    def __init__(self, store: Store, level_up_every_days: int):
        self.store = store
        self.level_up_every_days = level_up_every_days

    async def ensure_missions_for_date(
        self,
        user_id: str,
        date_key: str,
        difficulty_multiplier: float,
        progression: Optional[Progression] = None,
    ) -> List[Mission]:
        """
        Missions stored for the date, generating them on first visit.

        Already-stored days are returned as-is: targets are fixed when the day
        is first generated, even if progression has moved on since.
        """
        existing = await self.store.list_missions(user_id, date_key)
        if existing:
            return existing

        generated = generate_daily_missions(date_key, difficulty_multiplier, progression)
        rows = [
            {"type": m.type, "target_value": m.target_value, "status": MissionStatus.PENDING}
            for m in generated
        ]
        missions = await self.store.upsert_missions(user_id, date_key, rows)
        logger.info(
            "missions_generated",
            extra={"user_id": user_id, "date_key": date_key, "count": len(missions)},
        )
        return missions

    async def _apply(self, profile: Profile, changes: Dict[str, Any]) -> Profile:
        if not changes:
            return profile
        return await self.store.upsert_profile(profile.user_id, changes)

    async def _close_broken_day(
        self, profile: Profile, date_key: str, missions: List[Mission]
    ) -> Profile:
        pending_ids = [m.id for m in missions if m.status == MissionStatus.PENDING]
        if pending_ids:
            await self.store.bulk_update_status(pending_ids, profile.user_id, MissionStatus.FAILED)

        completed = sum(1 for m in missions if m.status == MissionStatus.COMPLETED)
        await self.store.upsert_progress_log(profile.user_id, date_key, completed, failed=True)

        changes = next_streak_state(
            profile, date_key, DayOutcome.BROKEN, self.level_up_every_days
        )
        if changes:
            logger.info(
                "streak_broken",
                extra={
                    "user_id": profile.user_id,
                    "date_key": date_key,
                    "previous_streak": profile.current_streak,
                },
            )
        return await self._apply(profile, changes)

    async def record_secured_day(
        self, profile: Profile, date_key: str, mission_count: int
    ) -> Profile:
        """Count a fully completed day once; a no-op when already recorded."""
        changes = next_streak_state(
            profile, date_key, DayOutcome.SECURED, self.level_up_every_days
        )
        if not changes:
            return profile

        profile = await self._apply(profile, changes)
        await self.store.upsert_progress_log(
            profile.user_id, date_key, mission_count, failed=False
        )
        logger.info(
            "day_secured",
            extra={
                "user_id": profile.user_id,
                "date_key": date_key,
                "current_streak": profile.current_streak,
                "level": profile.level,
            },
        )
        return profile

    async def _commit_watermark(self, profile: Profile, yesterday: str) -> Profile:
        if not await self.store.supports_watermark():
            return profile

        if profile.last_reconciled_date == yesterday:
            return profile
        return await self.store.upsert_profile(
            profile.user_id, {"last_reconciled_date": yesterday}
        )

    async def reconcile(
        self, profile: Profile, today_key: str, difficulty_multiplier: float
    ) -> Profile:
        """Score every unprocessed day before `today_key` and return the fresh profile."""
        user_id = profile.user_id
        yesterday = add_days(today_key, -1)
        start_from = profile.last_reconciled_date or profile.last_success_date

        if not start_from:
            # Brand-new profile: nothing to replay.
            return await self._commit_watermark(profile, yesterday)

        if diff_days(start_from, yesterday) > 0:
            start_from = yesterday

        cursor = add_days(start_from, 1)
        failed_detected = False
        days = 0

        while diff_days(cursor, yesterday) <= 0:
            missions = await self.ensure_missions_for_date(
                user_id, cursor, difficulty_multiplier, Progression.from_profile(profile)
            )

            if is_day_secured(missions):
                profile = await self.record_secured_day(profile, cursor, len(missions))
            else:
                failed_detected = True
                profile = await self._close_broken_day(profile, cursor, missions)

            cursor = add_days(cursor, 1)
            days += 1

        profile = await self._commit_watermark(profile, yesterday)

        if failed_detected:
            # The watermark write can race a concurrent reset; read back the latest row.
            profile = await self.store.get_profile(user_id)

        if days:
            logger.info(
                "user_reconciled",
                extra={
                    "user_id": user_id,
                    "days": days,
                    "through": yesterday,
                    "failed_detected": failed_detected,
                },
            )
        return profile

    async def reconcile_profile(
        self,
        profile: Profile,
        archetypes: ArchetypeCatalog,
        now: Optional[datetime] = None,
    ) -> Profile:
        """Reconcile against "today" in the profile's own timezone."""
        now = now or datetime.now(timezone.utc)
        today_key = date_key_in_time_zone(now, profile.timezone)
        multiplier = await archetypes.resolve_difficulty_multiplier(profile.archetype_id)
        return await self.reconcile(profile, today_key, multiplier)

    async def reconcile_user(
        self,
        user_id: str,
        archetypes: ArchetypeCatalog,
        now: Optional[datetime] = None,
    ) -> Profile:
        profile = await self.store.get_profile(user_id)
        return await self.reconcile_profile(profile, archetypes, now)

    async def reconcile_all(
        self,
        archetypes: ArchetypeCatalog,
        now: Optional[datetime] = None,
        page_size: int = DEFAULT_SWEEP_PAGE_SIZE,
    ) -> SweepResult:
        """
        Sweep every profile page by page.

        A failing user is recorded and skipped; a failing page read aborts the
        sweep since there is no way to know which users it would have held.
        """
        now = now or datetime.now(timezone.utc)
        result = SweepResult()
        offset = 0

        while True:
            page = await self.store.list_profiles_page(offset, page_size)
            if not page:
                break

            for profile in page:
                result.processed += 1
                try:
                    await self.reconcile_profile(profile, archetypes, now)
                    result.reconciled += 1
                except Exception as e:
                    logger.exception("user_reconcile_failed", extra={"user_id": profile.user_id})
                    result.errors.append(
                        {"user_id": profile.user_id, "message": getattr(e, "message", None) or str(e)}
                    )

            offset += len(page)
            if len(page) < page_size:
                break

        logger.info(
            "sweep_finished",
            extra={
                "processed": result.processed,
                "reconciled": result.reconciled,
                "error_count": len(result.errors),
            },
        )
        return result
