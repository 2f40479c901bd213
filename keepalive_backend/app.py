"""
FastAPI Application Entry Point
Keep-alive Backend API Server

Usage:
    # Development with auto-reload
    uvicorn keepalive_backend.app:app --reload

    # Production
    uvicorn keepalive_backend.app:app --host 127.0.0.1 --port 8765
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from keepalive_backend import __version__
from keepalive_backend.config.loader import get_config
from keepalive_backend.core.logger import get_logger
from keepalive_backend.handlers import register_fastapi_routes
from keepalive_backend.system.runtime import get_runtime, start_runtime, stop_runtime

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI application lifecycle management"""
    logger.info("========== Keep-alive Backend Starting ==========")

    try:
        config_loader = get_config()
        logger.info(f"✓ Configuration loaded: {config_loader.config_file}")

        runtime = await start_runtime()
        logger.info("✓ Keep-alive runtime started")

        # Restore the session that was active when the process last exited
        if runtime.store.get("enabled") and runtime.session.has_permission:
            runtime.session.start_session()

        logger.info("========== Keep-alive Backend Ready ==========")

    except Exception as e:
        logger.error(f"Failed to initialize backend: {e}", exc_info=True)
        raise

    yield

    logger.info("========== Keep-alive Backend Shutting Down ==========")
    try:
        await stop_runtime()
        logger.info("✓ Keep-alive runtime stopped")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Keep-alive Backend API",
        description="Keeps the machine awake by periodically nudging the mouse cursor",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # The API only listens on localhost; the desktop shell calls it from a webview origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_fastapi_routes(app, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "service": "Keep-alive Backend API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
            "redoc": "/redoc",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        try:
            runtime = get_runtime()
            return {
                "status": "healthy",
                "service": "keepalive-backend",
                "session_active": runtime.session.is_active,
                "has_permission": runtime.session.has_permission,
            }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy",
                "service": "keepalive-backend",
                "error": str(e),
            }

    logger.info("✓ FastAPI application created with routes")
    return app


app = create_app()
