# ============================================================================
# FILE: cloudly/main.py
# ============================================================================
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from cloudly import __version__
from cloudly.api.v1.router import api_router
from cloudly.config import Settings, settings as default_settings
from cloudly.core.exceptions import CloudlyError, ValidationFailedError
from cloudly.core.logging import setup_logging
from cloudly.core.media_storage import LocalMediaStorage, MediaStorage, create_media_storage
from cloudly.db.session import Database
import logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

def create_app(app_settings: Optional[Settings] = None, media_storage: Optional[MediaStorage] = None) -> FastAPI:
    """Build the FastAPI application with its database and media storage"""
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="Cloudly Music Streaming API",
        description="Song uploads, playlists, likes and a personalized home feed",
        version=__version__
    )
    app.state.settings = app_settings
    app.state.database = Database(app_settings.DATABASE_URL, echo=app_settings.DATABASE_ECHO)
    app.state.media = media_storage or create_media_storage(app_settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API v1 router
    app.include_router(api_router, prefix="/api/v1")

    # Serve locally stored media
    if isinstance(app.state.media, LocalMediaStorage):
        app.mount(
            app_settings.MEDIA_BASE_URL,
            StaticFiles(directory=str(app.state.media.root)),
            name="media",
        )

    @app.exception_handler(CloudlyError)
    async def cloudly_error_handler(request: Request, exc: CloudlyError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        content = {"detail": exc.detail}
        if isinstance(exc, ValidationFailedError) and exc.errors:
            content["errors"] = exc.errors
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"{request.method} {request.url.path} database error: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Operation failed"})

    @app.on_event("startup")
    async def startup_event():
        """Initialize services on startup"""
        logger.info(f"Starting {app_settings.APP_NAME} API")
        await app.state.database.create_tables()

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown"""
        logger.info(f"Shutting down {app_settings.APP_NAME} API")
        await app.state.media.close()
        await app.state.database.close()

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.get("/")
    async def root():
        return {"message": f"{app_settings.APP_NAME} API", "version": __version__, "docs": "/docs"}

    return app

# Create FastAPI app instance
app = create_app()
