"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storycraft import __version__
from storycraft.api.deps import container
from storycraft.api.v1 import admin, auth, enhanced_proposals, health, proposals
from storycraft.core.config import settings
from storycraft.core.constants import API_PREFIX
from storycraft.core.exceptions import StoryCraftError
from storycraft.core.logging import LogContext, clear_context, get_logger, setup_logging
from storycraft.core.security import generate_request_id
from storycraft.db.database import close_db, init_db

# Initialize logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(
        "Starting StoryCraft",
        app_name=settings.app_name,
        env=settings.app_env,
        storage=settings.database.backend,
    )

    if settings.uses_sql_storage:
        await init_db()

    container.initialize()
    logger.info("Service container initialized")

    yield

    # Shutdown
    logger.info("Shutting down StoryCraft")
    if settings.uses_sql_storage:
        await close_db()


# Create FastAPI application
app = FastAPI(
    title="StoryCraft API",
    description="Proposal drafting assistant that turns guided conversations into user stories and epics",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.security.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Tag every log line of a request with a request id."""
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    clear_context()
    with LogContext(request_id=request_id, path=request.url.path):
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Exception handlers
@app.exception_handler(StoryCraftError)
async def storycraft_error_handler(
    request: Request,
    exc: StoryCraftError,
) -> JSONResponse:
    """Handle custom application errors."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "Application error",
        error_code=exc.code,
        error_message=exc.message,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected errors."""
    logger.exception(
        "Unexpected error",
        error=str(exc),
        path=request.url.path,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            }
        },
    )


# Include routers
app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])
app.include_router(auth.router, prefix=API_PREFIX, tags=["Auth"])
app.include_router(proposals.router, prefix=API_PREFIX, tags=["Proposals"])
app.include_router(enhanced_proposals.router, prefix=API_PREFIX, tags=["Enhanced Proposals"])
app.include_router(admin.router, prefix=API_PREFIX, tags=["Admin"])


# Root endpoint
@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else "Disabled in production",
    }


# API info endpoint
@app.get("/api")
async def api_info() -> dict[str, Any]:
    """API information endpoint."""
    return {
        "name": "StoryCraft API",
        "version": __version__,
        "prefix": API_PREFIX,
        "endpoints": {
            "health": f"{API_PREFIX}/health",
            "auth": f"{API_PREFIX}/auth",
            "proposals": f"{API_PREFIX}/proposals",
            "enhanced_proposals": f"{API_PREFIX}/enhanced-proposals",
            "admin": f"{API_PREFIX}/admin",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storycraft.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
