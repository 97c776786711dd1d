"""
Supabase (PostgREST) implementation of the store contracts.

supabase-py's client is synchronous, so every request is pushed to a worker
thread to keep the event loop free.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from postgrest.exceptions import APIError
from supabase import Client, create_client

from ascendia.config import settings
from ascendia.db.base import Store
from ascendia.errors import NotFoundError, SchemaUnavailableError, StorageError
from ascendia.models import Archetype, Mission, MissionStatus, MissionType, Profile

# PGRST205: table missing from the schema cache. 42P01: undefined table.
SCHEMA_MISSING_CODES = {"PGRST205", "42P01"}
# PGRST204: column missing from the schema cache. 42703: undefined column.
COLUMN_MISSING_CODES = {"PGRST204", "42703"}

ARCHETYPE_COLUMNS = "id,display_name,description,difficulty_multiplier,tone,message_style"


class SupabaseStore(Store):
    def __init__(self, client: Optional[Client] = None):
        self.client: Optional[Client] = client
        self._watermark: Optional[bool] = None

    def connect(self) -> "SupabaseStore":
        if self.client is None:
            if not settings.uses_supabase:
                raise StorageError("Supabase credentials not configured")
            self.client = create_client(settings.supabase_url, settings.supabase_service_role_key)
        return self

    async def _execute(self, query) -> Any:
        """Run a PostgREST query, translating API errors into the store taxonomy."""
        try:
            return await asyncio.to_thread(query.execute)
        except APIError as e:
            if e.code in SCHEMA_MISSING_CODES or e.code in COLUMN_MISSING_CODES:
                raise SchemaUnavailableError() from e
            raise StorageError(e.message or str(e), e) from e

    def _table(self, name: str):
        return self.connect().client.table(name)

    # ==========================================
    # PROFILES
    # ==========================================

    async def supports_watermark(self) -> bool:
        if self._watermark is None:
            try:
                await asyncio.to_thread(
                    self._table("profiles").select("last_reconciled_date").limit(1).execute
                )
                self._watermark = True
            except APIError as e:
                if e.code in SCHEMA_MISSING_CODES:
                    raise SchemaUnavailableError() from e
                if e.code not in COLUMN_MISSING_CODES:
                    raise StorageError(e.message or str(e), e) from e
                self._watermark = False
        return self._watermark

    async def get_profile(self, user_id: str) -> Profile:
        result = await self._execute(
            self._table("profiles").select("*").eq("user_id", user_id).limit(1)
        )
        if not result.data:
            raise NotFoundError(f"Profile not found: {user_id}")
        return Profile.model_validate(result.data[0])

    async def upsert_profile(self, user_id: str, fields: Dict[str, Any]) -> Profile:
        fields = dict(fields)
        if not await self.supports_watermark():
            fields.pop("last_reconciled_date", None)

        existing = await self._execute(
            self._table("profiles").select("user_id").eq("user_id", user_id).limit(1)
        )
        if not existing.data:
            # Same default as the SQL backend rather than the column default.
            fields.setdefault("timezone", settings.default_timezone)

        result = await self._execute(
            self._table("profiles").upsert({"user_id": user_id, **fields}, on_conflict="user_id")
        )
        if not result.data:
            raise StorageError("Failed to load profile")
        return Profile.model_validate(result.data[0])

    async def list_profiles_page(self, offset: int, limit: int) -> List[Profile]:
        result = await self._execute(
            self._table("profiles").select("*").order("user_id").range(offset, offset + limit - 1)
        )
        return [Profile.model_validate(row) for row in result.data or []]

    async def delete_user(self, user_id: str) -> None:
        # Deleting the auth user cascades to profiles, missions and progress_log.
        client = self.connect().client
        try:
            await asyncio.to_thread(client.auth.admin.delete_user, user_id)
        except Exception as e:
            raise StorageError("Failed to delete account", e) from e

    # ==========================================
    # MISSIONS
    # ==========================================

    async def get_mission(self, mission_id: str, user_id: str) -> Mission:
        result = await self._execute(
            self._table("missions").select("*").eq("id", mission_id).eq("user_id", user_id).limit(1)
        )
        if not result.data:
            raise NotFoundError("Mission not found")
        return Mission.model_validate(result.data[0])

    async def list_missions(self, user_id: str, date_key: str) -> List[Mission]:
        result = await self._execute(
            self._table("missions")
            .select("*")
            .eq("user_id", user_id)
            .eq("date_key", date_key)
            .order("created_at")
        )
        return [Mission.model_validate(row) for row in result.data or []]

    async def list_missions_for_dates(
        self, user_id: str, date_keys: Sequence[str]
    ) -> List[Mission]:
        if not date_keys:
            return []
        result = await self._execute(
            self._table("missions")
            .select("*")
            .eq("user_id", user_id)
            .in_("date_key", list(date_keys))
            .order("date_key")
            .order("created_at")
        )
        return [Mission.model_validate(row) for row in result.data or []]

    async def upsert_missions(
        self, user_id: str, date_key: str, rows: Iterable[Dict[str, Any]]
    ) -> List[Mission]:
        payload = [
            {
                "user_id": user_id,
                "date_key": date_key,
                "type": MissionType(row["type"]).value,
                "target_value": int(row["target_value"]),
                "status": MissionStatus(row.get("status", MissionStatus.PENDING)).value,
            }
            for row in rows
        ]
        if payload:
            await self._execute(
                self._table("missions").upsert(
                    payload, on_conflict="user_id,date_key,type", ignore_duplicates=True
                )
            )
        return await self.list_missions(user_id, date_key)

    async def update_mission_status(
        self,
        mission_id: str,
        user_id: str,
        status: MissionStatus,
        completed_at: Optional[datetime] = None,
    ) -> None:
        values: Dict[str, Any] = {"status": MissionStatus(status).value}
        if completed_at is not None:
            values["completed_at"] = completed_at.isoformat()
        await self._execute(
            self._table("missions").update(values).eq("id", mission_id).eq("user_id", user_id)
        )

    async def bulk_update_status(
        self, mission_ids: Sequence[str], user_id: str, status: MissionStatus
    ) -> None:
        """Moves still-pending missions only; settled rows are left alone."""
        if not mission_ids:
            return
        await self._execute(
            self._table("missions")
            .update({"status": MissionStatus(status).value})
            .in_("id", list(mission_ids))
            .eq("user_id", user_id)
            .eq("status", MissionStatus.PENDING.value)
        )

    # ==========================================
    # PROGRESS LOG
    # ==========================================

    async def upsert_progress_log(
        self, user_id: str, date_key: str, completed_missions: int, failed: bool
    ) -> None:
        await self._execute(
            self._table("progress_log").upsert(
                {
                    "user_id": user_id,
                    "date_key": date_key,
                    "completed_missions": completed_missions,
                    "failed": failed,
                },
                on_conflict="user_id,date_key",
            )
        )

    # ==========================================
    # ARCHETYPES
    # ==========================================

    async def list_archetypes(self) -> List[Archetype]:
        result = await self._execute(
            self._table("archetypes")
            .select(ARCHETYPE_COLUMNS)
            .order("sort_order")
            .order("display_name")
        )
        return [Archetype.model_validate(row) for row in result.data or []]

    async def get_archetype(self, archetype_id: str) -> Optional[Archetype]:
        result = await self._execute(
            self._table("archetypes").select(ARCHETYPE_COLUMNS).eq("id", archetype_id).limit(1)
        )
        return Archetype.model_validate(result.data[0]) if result.data else None

    async def close(self) -> None:
        self.client = None
