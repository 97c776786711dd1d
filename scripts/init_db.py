#!/usr/bin/env python3
"""
One-shot helper: create SQL tables and seed archetypes without starting the server.
"""
import asyncio

from ascendia.db import create_db_and_tables, create_engine


async def main():
    engine = create_engine()
    try:
        await create_db_and_tables(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
    print("DB tables created.")
