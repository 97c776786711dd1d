"""
SQLModel / async SQLAlchemy implementation of the store contracts.
Used for local development (aiosqlite) and for tests; any async dialect with
ON CONFLICT support (SQLite, PostgreSQL) works.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, Iterable, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import delete, inspect, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, NoSuchTableError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker

from ascendia.db.base import Store
from ascendia.db.tables import (
    ArchetypeRecord,
    MissionRecord,
    ProfileRecord,
    ProgressLogRecord,
    utcnow,
)
from ascendia.errors import AscendiaError, NotFoundError, SchemaUnavailableError, StorageError
from ascendia.models import Archetype, Mission, MissionStatus, MissionType, Profile

_MISSING_SCHEMA_MARKERS = ("no such table", "no such column", "does not exist", "undefinedtable")

_PROFILE_FIELDS = frozenset(ProfileRecord.model_fields) - {"user_id", "created_at"}


def _is_missing_schema(err: SQLAlchemyError) -> bool:
    if isinstance(err, NoSuchTableError):
        return True
    text = str(getattr(err, "orig", None) or err).lower()
    return any(marker in text for marker in _MISSING_SCHEMA_MARKERS)


class SqlStore(Store):
    def __init__(self, engine: AsyncEngine, *, watermark: Optional[bool] = None):
        """
        `watermark` forces the last_reconciled_date capability; by default it
        is read from the live schema on first use.
        """
        self.engine = engine
        self._session_factory = sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self._watermark = watermark

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        session: AsyncSession = self._session_factory()
        try:
            yield session
            await session.commit()
        except AscendiaError:
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            if _is_missing_schema(e):
                raise SchemaUnavailableError() from e
            raise StorageError(f"Database error: {getattr(e, 'orig', None) or e}", e) from e
        finally:
            await session.close()

    async def close(self) -> None:
        await self.engine.dispose()

    @staticmethod
    def _insert_for(session: AsyncSession):
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise StorageError(f"Unsupported SQL dialect for upserts: {dialect}")

    # ==========================================
    # PROFILES
    # ==========================================

    async def supports_watermark(self) -> bool:
        if self._watermark is None:
            async with self._session() as db:
                conn = await db.connection()
                columns = await conn.run_sync(
                    lambda sync_conn: [c["name"] for c in inspect(sync_conn).get_columns("profiles")]
                )
            self._watermark = "last_reconciled_date" in columns
        return self._watermark

    async def _to_profile(self, record: ProfileRecord) -> Profile:
        profile = Profile.model_validate(record)
        if not await self.supports_watermark():
            profile = profile.model_copy(update={"last_reconciled_date": None})
        return profile

    async def get_profile(self, user_id: str) -> Profile:
        async with self._session() as db:
            record = await db.get(ProfileRecord, user_id)
            if record is None:
                raise NotFoundError(f"Profile not found: {user_id}")
        return await self._to_profile(record)

    async def _write_profile(self, user_id: str, fields: Dict[str, Any]) -> ProfileRecord:
        async with self._session() as db:
            record = await db.get(ProfileRecord, user_id)
            if record is None:
                record = ProfileRecord(user_id=user_id, **fields)
                db.add(record)
            else:
                for key, value in fields.items():
                    setattr(record, key, value)
                record.updated_at = utcnow()
            await db.flush()
            await db.refresh(record)
        return record

    async def upsert_profile(self, user_id: str, fields: Dict[str, Any]) -> Profile:
        fields = {k: v for k, v in fields.items() if k in _PROFILE_FIELDS}
        if not await self.supports_watermark():
            fields.pop("last_reconciled_date", None)
        try:
            record = await self._write_profile(user_id, fields)
        except StorageError as e:
            if not isinstance(e.cause, IntegrityError):
                raise
            # Lost an insert race; the winner's row exists now.
            record = await self._write_profile(user_id, fields)
        return await self._to_profile(record)

    async def list_profiles_page(self, offset: int, limit: int) -> List[Profile]:
        async with self._session() as db:
            result = await db.scalars(
                select(ProfileRecord).order_by(ProfileRecord.user_id).offset(offset).limit(limit)
            )
            records = list(result)
        return [await self._to_profile(r) for r in records]

    async def delete_user(self, user_id: str) -> None:
        async with self._session() as db:
            await db.execute(delete(MissionRecord).where(MissionRecord.user_id == user_id))
            await db.execute(delete(ProgressLogRecord).where(ProgressLogRecord.user_id == user_id))
            await db.execute(delete(ProfileRecord).where(ProfileRecord.user_id == user_id))

    # ==========================================
    # MISSIONS
    # ==========================================

    async def get_mission(self, mission_id: str, user_id: str) -> Mission:
        async with self._session() as db:
            record = await db.scalar(
                select(MissionRecord).where(
                    MissionRecord.id == mission_id, MissionRecord.user_id == user_id
                )
            )
            if record is None:
                raise NotFoundError("Mission not found")
            return Mission.model_validate(record)

    async def list_missions(self, user_id: str, date_key: str) -> List[Mission]:
        return await self.list_missions_for_dates(user_id, [date_key])

    async def list_missions_for_dates(
        self, user_id: str, date_keys: Sequence[str]
    ) -> List[Mission]:
        if not date_keys:
            return []
        async with self._session() as db:
            result = await db.scalars(
                select(MissionRecord)
                .where(MissionRecord.user_id == user_id, MissionRecord.date_key.in_(list(date_keys)))
                .order_by(MissionRecord.date_key, MissionRecord.created_at, MissionRecord.type)
            )
            return [Mission.model_validate(r) for r in result]

    async def upsert_missions(
        self, user_id: str, date_key: str, rows: Iterable[Dict[str, Any]]
    ) -> List[Mission]:
        now = utcnow()
        values = [
            {
                "id": str(uuid4()),
                "user_id": user_id,
                "date_key": date_key,
                "type": MissionType(row["type"]).value,
                "target_value": int(row["target_value"]),
                "status": MissionStatus(row.get("status", MissionStatus.PENDING)).value,
                "created_at": now,
            }
            for row in rows
        ]
        if values:
            async with self._session() as db:
                insert = self._insert_for(db)
                stmt = insert(MissionRecord).values(values).on_conflict_do_nothing(
                    index_elements=["user_id", "date_key", "type"]
                )
                await db.execute(stmt)
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
            # SQLite drops the offset, so store the UTC instant.
            values["completed_at"] = completed_at.astimezone(timezone.utc)
        async with self._session() as db:
            await db.execute(
                update(MissionRecord)
                .where(MissionRecord.id == mission_id, MissionRecord.user_id == user_id)
                .values(**values)
            )

    async def bulk_update_status(
        self, mission_ids: Sequence[str], user_id: str, status: MissionStatus
    ) -> None:
        """Moves still-pending missions only; settled rows are left alone."""
        if not mission_ids:
            return
        async with self._session() as db:
            await db.execute(
                update(MissionRecord)
                .where(
                    MissionRecord.id.in_(list(mission_ids)),
                    MissionRecord.user_id == user_id,
                    MissionRecord.status == MissionStatus.PENDING.value,
                )
                .values(status=MissionStatus(status).value)
            )

    # ==========================================
    # PROGRESS LOG
    # ==========================================

    async def upsert_progress_log(
        self, user_id: str, date_key: str, completed_missions: int, failed: bool
    ) -> None:
        now = utcnow()
        async with self._session() as db:
            insert = self._insert_for(db)
            stmt = insert(ProgressLogRecord).values(
                user_id=user_id,
                date_key=date_key,
                completed_missions=completed_missions,
                failed=failed,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "date_key"],
                set_={"completed_missions": completed_missions, "failed": failed, "updated_at": now},
            )
            await db.execute(stmt)

    # ==========================================
    # ARCHETYPES
    # ==========================================

    async def list_archetypes(self) -> List[Archetype]:
        async with self._session() as db:
            result = await db.scalars(
                select(ArchetypeRecord).order_by(
                    ArchetypeRecord.sort_order, ArchetypeRecord.display_name
                )
            )
            return [Archetype.model_validate(r) for r in result]

    async def get_archetype(self, archetype_id: str) -> Optional[Archetype]:
        async with self._session() as db:
            record = await db.get(ArchetypeRecord, archetype_id)
            return Archetype.model_validate(record) if record else None

    async def seed_archetypes(self, archetypes: Iterable[Archetype]) -> None:
        rows = [
            {**a.model_dump(mode="json"), "sort_order": position}
            for position, a in enumerate(archetypes)
        ]
        if not rows:
            return
        async with self._session() as db:
            insert = self._insert_for(db)
            await db.execute(
                insert(ArchetypeRecord).values(rows).on_conflict_do_nothing(index_elements=["id"])
            )
