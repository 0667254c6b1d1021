import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from jobboard.api.endpoints import categories, health, jobs, references, users
from jobboard.core.config import settings
from jobboard.core.database import init_db
from jobboard.core.error_handlers import register_exception_handlers
from jobboard.core.logging_config import setup_logging
from jobboard.core.middleware import (
    BodySizeLimitMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from jobboard.core.rate_limiter import RateLimiter, build_rate_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    logger.info(f"Starting up {settings.PROJECT_NAME} ({settings.ENVIRONMENT})...")
    init_db()
    logger.info("Database models registered")

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME}...")


def create_app(rate_limiter: Optional[RateLimiter] = None) -> FastAPI:
    """
    Build the application.

    The rate limiter is created here (or injected by the caller) and kept on
    app.state so it can be inspected and reset.
    """
    setup_logging(settings.LOG_LEVEL, json_logs=settings.JSON_LOGS or not settings.is_development)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Administrative API of the job board",
        lifespan=lifespan,
    )

    app.state.rate_limiter = rate_limiter or build_rate_limiter()

    # Innermost first: rate limiting runs after headers, compression and CORS are in place
    app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter, path_prefix="/api")
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_JSON_BODY_BYTES)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if settings.is_development:
        app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(users.router, prefix=settings.API_V1_STR)
    app.include_router(categories.router, prefix=settings.API_V1_STR)
    app.include_router(references.departments_router, prefix=settings.API_V1_STR)
    app.include_router(references.locations_router, prefix=settings.API_V1_STR)
    app.include_router(references.levels_router, prefix=settings.API_V1_STR)
    app.include_router(jobs.router, prefix=settings.API_V1_STR)
    app.include_router(health.router)

    @app.post(f"{settings.API_V1_STR}/logout", tags=["Users"])
    def logout():
        return users.logout_response()

    app.mount(
        settings.IMAGES_URL_PREFIX,
        StaticFiles(directory=settings.IMAGES_DIR, check_dir=False),
        name="images",
    )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level="info"
    )
