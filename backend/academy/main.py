"""FastAPI application entry point.

This module wires together the API routers, maps engine errors onto
HTTP responses, and seeds the curriculum on startup. Progression rules
live in :mod:`academy.progression`.
"""

import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from academy.routes import badges, levels, quizzes
from academy.database import create_db_and_tables, async_session
from academy.crud import ensure_curriculum_content
from academy.errors import AcademyError
from academy.progression import get_progression_engine

# Root logging level comes from LOG_LEVEL.
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL))
logger = logging.getLogger(__name__)

app = FastAPI(title="Academy Progression API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    """Create tables and make sure the built-in curriculum exists."""

    await create_db_and_tables()
    async with async_session() as session:
        await ensure_curriculum_content(session)


@app.on_event("shutdown")
async def on_shutdown():
    """Let in-flight notifications finish before the process exits."""

    await get_progression_engine().wait_for_notifications()


app.include_router(quizzes.router)
app.include_router(levels.router)
app.include_router(badges.router)


@app.get("/")
async def read_root():
    return {"message": "Welcome to the Academy Progression API"}


@app.exception_handler(AcademyError)
async def academy_exception_handler(request: Request, exc: AcademyError):
    """Translate engine errors into JSON error responses."""
    if exc.status_code >= 500:
        logger.error("Request %s failed: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error during request %s", request.url.path)
    return JSONResponse(
        status_code=503,
        content={"code": "store_unavailable", "message": "The database is unavailable"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler that logs the stack trace once."""
    logger.exception("Unhandled error during request %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "code": "internal_server_error",
            "message": "An unexpected error occurred",
        },
    )
