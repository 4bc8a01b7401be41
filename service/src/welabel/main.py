"""Main FastAPI application: browse, export and analyze recordings."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, HTTPException

from .analysis.tree import SnapshotElementTree
from .captioning import caption_context
from .config import settings
from .exceptions import CaptioningError, DecodeError, SessionNotFoundError, StorageError
from .logging_config import setup_logging
from .models.api import AnalyzeRequest, AnalyzeResponse, ExportResponse
from .models.context import InteractionContext
from .models.interactions import encode_interaction
from .services import Services, summarize

# Setup logging
setup_logging(level=settings.LOG_LEVEL, debug=settings.DEBUG)
logger = logging.getLogger(__name__)

# Global services (initialized in lifespan)
services: Services


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info(f"Starting {settings.PROJECT_NAME}...")

    global services
    services = Services(settings)

    removed = await services.screenshot_store.cleanup_old(settings.MAX_SCREENSHOT_AGE_HOURS)
    if removed > 0:
        logger.info(f"Removed {removed} expired screenshot(s)")

    logger.info(f"{settings.PROJECT_NAME} started successfully")

    yield

    logger.info("Shutting down gracefully...")
    await services.shutdown()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": settings.PROJECT_NAME,
        "store_backend": settings.STORE_BACKEND,
        "captioning": services.captioning is not None,
    }


@app.get("/sessions")
async def list_sessions():
    """List recorded sessions, newest first."""
    sessions = await services.session_log.list_all()
    return {"sessions": [summarize(session).to_dict() for session in sessions]}


@app.get("/sessions/{session_id}")
async def get_session(session_id: str) -> Dict[str, Any]:
    """Session summary with its interactions in recording order."""
    try:
        session = await services.load_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except DecodeError as e:
        logger.error(f"Corrupt session {session_id}: {e.message}")
        raise HTTPException(status_code=422, detail=f"Session record is corrupt: {e.message}")
    except StorageError as e:
        logger.error(f"Error loading session {session_id}: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to load session")

    return {
        **summarize(session).to_dict(),
        "skippedEntries": session.skipped_entries,
        "interactions": [encode_interaction(i) for i in session.interactions],
    }


@app.post("/sessions/{session_id}/export")
async def export_session(session_id: str, archive: bool = False):
    """Export a session to the exports directory, optionally zipped."""
    try:
        session = await services.load_session(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except (DecodeError, StorageError) as e:
        logger.error(f"Error loading session {session_id}: {e.message}")
        raise HTTPException(status_code=500, detail="Failed to load session")

    export_dir = await services.exporter.export_to_portable_format(
        session, settings.exports_dir
    )
    if export_dir is None:
        raise HTTPException(status_code=500, detail="Failed to export session")

    archive_path = await services.exporter.create_archive(export_dir) if archive else None

    return ExportResponse(
        session_id=session.id,
        export_path=str(export_dir),
        archive_path=str(archive_path) if archive_path else None,
    ).to_dict()


@app.post("/analyze")
async def analyze_element(request: AnalyzeRequest):
    """Rank elements related to one element of a posted UI snapshot."""
    tree = SnapshotElementTree(request.root)
    try:
        target = tree.element_at_path(request.target_path)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    position = request.position or target.center
    related = services.analyzer.analyze(target, position, tree)
    return AnalyzeResponse(target=target, related=related).to_dict()


@app.post("/caption")
async def caption_interaction(context: InteractionContext):
    """Caption an interaction from its before/after screenshots."""
    if services.captioning is None:
        raise HTTPException(status_code=503, detail="Captioning is not configured")

    try:
        captioned = await caption_context(
            services.captioning, context, services.screenshot_store
        )
    except CaptioningError as e:
        logger.error(f"Captioning failed: {e.message} {e.detail}".rstrip())
        raise HTTPException(status_code=502, detail=e.message)

    return captioned.to_dict()
