"""
Ascendia API - Main Application
Daily missions, streak/level progression and day reconciliation.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ascendia import __version__
from ascendia.api import internal, me, missions
from ascendia.config import configure_logging, settings
from ascendia.db import close_store, create_db_and_tables, get_store
from ascendia.db.sql_store import SqlStore
from ascendia.errors import AscendiaError

logger = logging.getLogger("ascendia")


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    store = get_store()
    if isinstance(store, SqlStore):
        await create_db_and_tables(store.engine)
    logger.info("ascendia_started", extra={"version": __version__, "env": settings.env})
    yield
    await close_store()


app = FastAPI(title="Ascendia API", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AscendiaError)
async def ascendia_error_handler(request: Request, exc: AscendiaError):
    if exc.status_code >= 500:
        logger.error(
            "request_failed",
            extra={"path": request.url.path, "code": exc.code, "error": exc.message},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/")
async def root():
    return {"name": "ascendia-api", "ok": True}


app.include_router(me.router)
app.include_router(missions.router)
app.include_router(internal.router)
