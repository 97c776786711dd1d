"""
Archetype catalog: resolves a profile's archetype to its difficulty multiplier.

The catalog is handed to services explicitly; the built-in table covers
deployments whose database has no archetypes table yet.
"""

import logging
from typing import List, Optional, Sequence

from ascendia.db.base import ArchetypeStore
from ascendia.errors import SchemaUnavailableError, StorageError
from ascendia.models import Archetype, ArchetypeTone

logger = logging.getLogger("ascendia")

DEFAULT_DIFFICULTY_MULTIPLIER = 1.0

DEFAULT_ARCHETYPES: tuple = (
    Archetype(
        id="shadow-ascendant",
        display_name="Shadow Ascendant",
        description="Ruthless discipline. No excuses. No negotiation.",
        difficulty_multiplier=1.2,
        tone=ArchetypeTone.STRICT,
        message_style="strict",
    ),
    Archetype(
        id="iron-sentinel",
        display_name="Iron Sentinel",
        description="Balanced structure. Consistency over intensity.",
        difficulty_multiplier=1.0,
        tone=ArchetypeTone.CALM,
        message_style="calm",
    ),
    Archetype(
        id="flame-vanguard",
        display_name="Flame Vanguard",
        description="Aggressive pace. Momentum is mandatory.",
        difficulty_multiplier=1.1,
        tone=ArchetypeTone.AGGRESSIVE,
        message_style="aggressive",
    ),
)


class ArchetypeCatalog:
    def __init__(
        self,
        store: Optional[ArchetypeStore] = None,
        defaults: Sequence[Archetype] = DEFAULT_ARCHETYPES,
    ):
        self.store = store
        self.defaults = tuple(defaults)

    def _default(self, archetype_id: str) -> Optional[Archetype]:
        return next((a for a in self.defaults if a.id == archetype_id), None)

    async def list_archetypes(self) -> List[Archetype]:
        if self.store is None:
            return list(self.defaults)
        try:
            archetypes = await self.store.list_archetypes()
        except SchemaUnavailableError:
            return list(self.defaults)
        return archetypes

    async def get(self, archetype_id: Optional[str]) -> Optional[Archetype]:
        if not archetype_id:
            return None
        if self.store is None:
            return self._default(archetype_id)
        try:
            archetype = await self.store.get_archetype(archetype_id)
        except SchemaUnavailableError:
            return self._default(archetype_id)
        return archetype

    async def is_valid(self, archetype_id: str) -> bool:
        return await self.get(archetype_id) is not None

    async def resolve_difficulty_multiplier(self, archetype_id: Optional[str]) -> float:
        """Multiplier for the archetype; 1.0 when unset, unknown or unreachable."""
        try:
            archetype = await self.get(archetype_id)
        except StorageError as e:
            logger.warning(
                "archetype_lookup_failed",
                extra={"archetype_id": archetype_id, "error": e.message},
            )
            archetype = self._default(archetype_id) if archetype_id else None
        if archetype is None:
            return DEFAULT_DIFFICULTY_MULTIPLIER
        return archetype.difficulty_multiplier
