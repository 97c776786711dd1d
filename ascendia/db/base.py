"""
Storage contracts the core talks to.

Every method raises SchemaUnavailableError when the backing table/column is
missing and StorageError for any other backend failure.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ascendia.models import Archetype, Mission, MissionStatus, Profile


class UserStore(ABC):
    @abstractmethod
    async def get_profile(self, user_id: str) -> Profile:
        """Raises NotFoundError when the user has no profile row."""

    @abstractmethod
    async def upsert_profile(self, user_id: str, fields: Dict[str, Any]) -> Profile:
        """Insert-or-update keyed by user_id; only `fields` change."""

    @abstractmethod
    async def list_profiles_page(self, offset: int, limit: int) -> List[Profile]:
        ...

    @abstractmethod
    async def supports_watermark(self) -> bool:
        """Whether profiles persist last_reconciled_date. Resolved once."""

    @abstractmethod
    async def delete_user(self, user_id: str) -> None:
        """Remove the profile and everything owned by it."""


class MissionStore(ABC):
    @abstractmethod
    async def get_mission(self, mission_id: str, user_id: str) -> Mission:
        """Raises NotFoundError when absent or owned by someone else."""

    @abstractmethod
    async def list_missions(self, user_id: str, date_key: str) -> List[Mission]:
        ...

    @abstractmethod
    async def list_missions_for_dates(
        self, user_id: str, date_keys: Sequence[str]
    ) -> List[Mission]:
        ...

    @abstractmethod
    async def upsert_missions(
        self, user_id: str, date_key: str, rows: Iterable[Dict[str, Any]]
    ) -> List[Mission]:
        """
        Insert rows keyed by (user_id, date_key, type), leaving existing rows
        untouched, and return every mission stored for the date.
        """

    @abstractmethod
    async def update_mission_status(
        self,
        mission_id: str,
        user_id: str,
        status: MissionStatus,
        completed_at: Optional[datetime] = None,
    ) -> None:
        ...

    @abstractmethod
    async def bulk_update_status(
        self, mission_ids: Sequence[str], user_id: str, status: MissionStatus
    ) -> None:
        ...


class ProgressLogStore(ABC):
    @abstractmethod
    async def upsert_progress_log(
        self, user_id: str, date_key: str, completed_missions: int, failed: bool
    ) -> None:
        ...


class ArchetypeStore(ABC):
    @abstractmethod
    async def list_archetypes(self) -> List[Archetype]:
        ...

    @abstractmethod
    async def get_archetype(self, archetype_id: str) -> Optional[Archetype]:
        ...


class Store(UserStore, MissionStore, ProgressLogStore, ArchetypeStore, ABC):
    """Everything one backend provides."""

    async def close(self) -> None:
        return None
