from fastapi import Depends

from ascendia.config import settings
from ascendia.db import get_store
from ascendia.db.base import Store
from ascendia.services.archetypes import ArchetypeCatalog
from ascendia.services.missions import MissionService


def get_mission_service(store: Store = Depends(get_store)) -> MissionService:
    return MissionService(
        store=store,
        archetypes=ArchetypeCatalog(store),
        level_up_every_days=settings.level_up_every_days,
    )
