"""
Pearls - thread-scoped memory service for AI instances.

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pearls.ai.enrichment import get_enricher
from pearls.api.middleware.request_id import REQUEST_ID_HEADER, RequestIdMiddleware
from pearls.api.routes import router as api_router
from pearls.config import get_settings
from pearls.database import close_db, init_db, ping_db
from pearls.kernel.errors import OAuthError, PearlsError
from pearls.kernel.models.base import utcnow
from pearls.logging_config import configure_logging, get_logger
from pearls.schemas.common import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await init_db()
    logger.info("Database initialized")
    if not settings.embeddings_enabled:
        logger.info("OPENAI_API_KEY not set; semantic search disabled")

    yield

    logger.info("Shutting down...")
    await get_enricher().drain()
    await close_db()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.project_name,
    description="""
    Pearls - persistent, access-controlled memory for AI instances.

    ## Surfaces

    - **MCP** (`POST /mcp`): JSON-RPC tools for creating, searching and reading pearls
    - **OAuth**: discovery, dynamic registration, authorization code + PKCE, refresh
    - **Admin** (`/api`): thread and pearl management for admins
    """,
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# add_middleware stacks innermost-first: CORS added last wraps everything.
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER, "WWW-Authenticate"],
)


def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


def _headers(request: Request) -> dict:
    req_id = _request_id(request)
    return {REQUEST_ID_HEADER: req_id} if req_id else {}


@app.exception_handler(OAuthError)
async def oauth_exception_handler(request: Request, exc: OAuthError):
    """OAuth rejections use the RFC 6749 error body."""
    logger.info("OAuth request rejected", extra={"error": exc.error, "path": request.url.path})
    headers = _headers(request)
    headers["Cache-Control"] = "no-store"
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(PearlsError)
async def pearls_exception_handler(request: Request, exc: PearlsError):
    """Typed domain failures raised outside the tool dispatcher."""
    if exc.status_code >= 500:
        logger.error("Upstream failure: %s", exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "request_id": _request_id(request)},
        headers=_headers(request),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    headers = dict(exc.headers or {})
    headers.update(_headers(request))
    content = {"detail": exc.detail}
    req_id = _request_id(request)
    if req_id and exc.status_code >= 500:
        content["request_id"] = req_id
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })
    content = {"detail": "Validation error", "errors": errors}
    req_id = _request_id(request)
    if req_id:
        content["request_id"] = req_id
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
        headers=_headers(request),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception("Unhandled exception: %s", exc)
    req_id = _request_id(request)
    if settings.debug:
        content = {"detail": str(exc), "type": type(exc).__name__, "request_id": req_id}
    else:
        content = {"detail": "Internal server error", "request_id": req_id}
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_headers(request),
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Check application and database health."""
    try:
        await ping_db()
    except Exception as exc:
        logger.error("Health check failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "error": "Database connection failed",
                "timestamp": utcnow().isoformat(),
            },
        )
    return HealthResponse(version=settings.version, timestamp=utcnow())


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with service information."""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "mcp": "/mcp",
        "docs": "/docs" if settings.debug else "disabled",
    }


app.include_router(api_router)


# Main entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pearls.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
    )
