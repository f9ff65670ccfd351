"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import auth, bookmarks, health, tags, users
from core.config import get_settings
from services.exceptions import OperationFailedError

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    from db.session import engine  # noqa: PLC0415
    from models import Base  # noqa: PLC0415

    configure_logging(get_settings().log_level)

    # Startup: make sure the schema exists
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")

    yield

    # Shutdown: release pooled connections
    await engine.dispose()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Bookmarks API",
    description="A per-user bookmark manager with tagging, search and a live change feed.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(OperationFailedError)
async def operation_failed_exception_handler(
    _request: Request, exc: OperationFailedError,
) -> JSONResponse:
    """Surface store failures as a generic error carrying the underlying message."""
    logger.error("Operation failed: %s", exc, exc_info=exc.cause)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(bookmarks.router)
app.include_router(tags.router)
