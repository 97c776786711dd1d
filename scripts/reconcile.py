#!/usr/bin/env python3
"""
Scheduled sweep: reconcile every user up to yesterday in their own timezone.
Prints the JSON summary; exits 1 when any user failed.
"""
import asyncio
import json
import sys

from ascendia.config import configure_logging, settings
from ascendia.db import close_store, get_store
from ascendia.services.archetypes import ArchetypeCatalog
from ascendia.services.missions import MissionService


async def main() -> int:
    configure_logging()
    store = get_store()
    try:
        service = MissionService(
            store=store,
            archetypes=ArchetypeCatalog(store),
            level_up_every_days=settings.level_up_every_days,
        )
        result = await service.reconcile_all(page_size=settings.sweep_page_size)
    finally:
        await close_store()

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
