"""
StudyNest FastAPI Application Entry Point.

Run with: uvicorn app.main:app --reload
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import (
    ai_chats,
    auth,
    dashboard,
    files,
    settings as settings_routes,
    study_groups,
    tasks,
)
from app.config import get_settings, sanitize_error
from app.exceptions import ErrorCode, StudyAppError, study_app_exception_handler
from app.logging_config import setup_logging
from app.services.s3 import StorageError
from app.worker import run_worker

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager: logging, plus the in-process job worker."""
    setup_logging(settings.log_level, settings.log_format)

    stop_event = asyncio.Event()
    worker_task = None
    if settings.scheduler_enabled:
        worker_task = asyncio.create_task(run_worker(stop_event))

    yield

    stop_event.set()
    if worker_task is not None:
        await worker_task


app = FastAPI(
    title=settings.app_name,
    description="Study productivity API: files, tasks, study groups and an AI study assistant",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StudyAppError, study_app_exception_handler)


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Blob storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=502,
        content={
            "error": ErrorCode.SERVICE_ERROR.value,
            "message": sanitize_error(exc, generic_message="File storage is unavailable."),
            "details": {},
        },
    )


# Include routers
app.include_router(auth.router)
app.include_router(files.router)
app.include_router(tasks.router)
app.include_router(dashboard.router)
app.include_router(settings_routes.router)
app.include_router(study_groups.router)
app.include_router(ai_chats.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
