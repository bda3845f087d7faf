"""FastAPI application setup."""
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging

from api.errors import to_http_exception
from api.routes import auth, chats, posts, uploads
from api.routes.health import router as health_router
from config.logging_config import setup_logging
from config.settings import settings
from database.client import init_supabase
from core.dependencies import init_dependencies, shutdown_dependencies
from core.errors import FindrError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    # STARTUP
    logger.info("Initializing database connection...")
    init_supabase()
    init_dependencies()
    logger.info("Application started")
    yield
    # SHUTDOWN
    await shutdown_dependencies()
    logger.info("Application shut down")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Findr API",
        description="Lost-and-found listings with per-listing chat",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Never combine allow_credentials=True with allow_origins=["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FindrError)
    async def findr_error_handler(request: Request, exc: FindrError):
        # Backstop for domain errors a route did not translate itself
        http_exc = to_http_exception(exc)
        return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})

    app.include_router(health_router, tags=["Health"])
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(posts.router, prefix="/posts", tags=["Listings"])
    app.include_router(uploads.router, prefix="/uploads", tags=["Uploads"])
    app.include_router(chats.router, prefix="/chats", tags=["Chats"])

    logger.info("FastAPI application created")
    return app
