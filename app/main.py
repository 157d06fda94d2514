"""
MedScope.ai - FastAPI Application
Main entry point for the web server.
"""
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app.routes.api import router as api_router
from app.routes.websocket import router as ws_router
from config.settings import CORS_ORIGINS, LOG_LEVEL
from core.errors import MedScopeError

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s | %(name)-25s | %(levelname)-7s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for the FastAPI application.
    Handles startup and shutdown logic.
    """
    logger.info("=" * 60)
    logger.info("  MedScope.ai - Starting up...")
    logger.info("=" * 60)
    try:
        get_engine().initialize()
    except Exception as e:
        # Components initialize lazily on first request as well
        logger.error(f"Analysis engine failed to initialize: {e}", exc_info=True)
    logger.info("MedScope.ai is ready!")
    logger.info("=" * 60)

    yield

    logger.info("MedScope.ai - Shutting down...")


# ── FastAPI App ─────────────────────────────────────────────────────────────
app = FastAPI(
    title="MedScope.ai",
    description="Medical image quality analysis, enhancement and AI-assisted reporting",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization", "X-API-Key"],
)

# Routes
app.include_router(api_router, prefix="/api", tags=["API"])
app.include_router(ws_router, prefix="/api", tags=["WebSocket"])


# ── Error Handlers ──────────────────────────────────────────────────────────
@app.exception_handler(MedScopeError)
async def medscope_error_handler(request: Request, exc: MedScopeError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# ── Engine (shared instance) ────────────────────────────────────────────────
_engine = None


def get_engine():
    """Get or create the shared analysis engine instance."""
    global _engine
    if _engine is None:
        from core.engine import AnalysisEngine
        _engine = AnalysisEngine()
    return _engine


@app.get("/")
async def root():
    """Service information."""
    return {
        "name": "MedScope.ai",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/health",
    }


def run():
    """Start the server with uvicorn."""
    import uvicorn
    from config.settings import API_HOST, API_PORT

    uvicorn.run(
        "app.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=False,
        log_level=LOG_LEVEL.lower(),
    )
