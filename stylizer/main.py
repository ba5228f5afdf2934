"""Photo Stylizer - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from stylizer.api.handlers import job_not_found_handler, upload_validation_handler
from stylizer.api.health import router as health_router
from stylizer.api.router import api_router
from stylizer.config import Settings
from stylizer.errors import JobNotFoundError, UploadValidationError
from stylizer.jobs.in_process import InProcessDispatcher
from stylizer.jobs.orchestrator import JobOrchestrator
from stylizer.jobs.store import JobStore
from stylizer.providers.base import TransformationProvider
from stylizer.providers.registry import build_provider
from stylizer.storage.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    state = app.state
    logger.info("Starting Photo Stylizer")
    logger.info("Provider: %s", state.provider.name)
    logger.info("Upload dir: %s", state.artifacts.base_dir)

    await state.dispatcher.start()
    logger.info("Job dispatcher started")

    yield

    logger.info("Shutting down Photo Stylizer")
    await state.dispatcher.stop()
    await state.provider.aclose()


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[TransformationProvider] = None,
) -> FastAPI:
    """Build the application and wire its components.

    The store, provider, orchestrator and dispatcher are created here and
    attached to app.state; nothing is held in module globals.
    """
    settings = settings or Settings()

    artifacts = ArtifactStore(settings.upload_dir, public_prefix=settings.public_prefix)
    artifacts.ensure_dirs()

    store = JobStore()
    provider = provider or build_provider(settings)
    orchestrator = JobOrchestrator(
        store,
        provider,
        artifacts,
        poll_interval=settings.poll_interval_seconds,
        max_attempts=settings.max_poll_attempts,
    )
    dispatcher = InProcessDispatcher(store, worker_fn=orchestrator.run)

    app = FastAPI(
        title="Photo Stylizer",
        description="Upload a photo and get it back as a Studio Ghibli style rendering",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.artifacts = artifacts
    app.state.store = store
    app.state.provider = provider
    app.state.orchestrator = orchestrator
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(UploadValidationError, upload_validation_handler)
    app.add_exception_handler(JobNotFoundError, job_not_found_handler)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router)
    app.mount(settings.public_prefix, StaticFiles(directory=artifacts.base_dir), name="uploads")
    return app
