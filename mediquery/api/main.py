"""
MediQuery API - FastAPI Application
===================================
HTTP surface for the query pipeline.

Endpoints:
- POST /api/query   - answer a natural-language question
- GET  /api/schema  - current schema (live or fallback)
- GET  /api/status  - model and store availability
- GET  /health      - liveness
"""

import os
import logging
from datetime import datetime
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..engine.pipeline import EngineDependencies, QueryPipeline, build_dependencies
from .routers import query, system

logging.basicConfig(
    level=os.getenv("MEDIQUERY_LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(engine: Optional[EngineDependencies] = None) -> FastAPI:
    """
    Build the application.

    Args:
        engine: Pre-built dependencies (built from the environment at startup if not provided)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        deps = engine or build_dependencies()
        app.state.engine = deps
        app.state.pipeline = QueryPipeline.from_dependencies(deps)
        logger.info("MediQuery API starting up...")

        yield

        # Shutdown
        logger.info("MediQuery API shutting down...")
        close = getattr(deps.runner, "close", None)
        if engine is None and close is not None:
            close()

    app = FastAPI(
        title="MediQuery API",
        description="Natural-language questions over the hospital database.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    # Security: Default to localhost origins only; configure CORS_ORIGINS for production
    cors_origins = os.getenv("CORS_ORIGINS", "http://localhost,http://localhost:3000").split(",")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in cors_origins if origin.strip()],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Requested-With"],
    )

    # ============================================
    # Include Routers
    # ============================================

    app.include_router(query.router, prefix="/api", tags=["Query"])
    app.include_router(system.router, prefix="/api", tags=["System"])

    # ============================================
    # Root Endpoints
    # ============================================

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "service": "MediQuery API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.get("/health", tags=["Root"])
    async def health():
        """Simple health check endpoint."""
        return {"status": "healthy"}

    # ============================================
    # Global Exception Handler
    # ============================================

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled errors."""
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc)
                },
                "meta": {
                    "timestamp": datetime.now().isoformat(),
                    "path": str(request.url)
                }
            }
        )

    return app


app = create_app()


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn
    uvicorn.run(
        "mediquery.api.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", 8000)),
        reload=os.getenv("API_RELOAD", "false").lower() == "true"
    )


if __name__ == "__main__":
    run()
