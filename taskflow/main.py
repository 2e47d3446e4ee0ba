from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import uvicorn
import logging

from .config import Settings, get_settings
from .database import build_engine, build_session_factory
from .models import Base
from .api.v1.router import api_router
from .core.errors import TaskflowError
from .services.rate_limiter import BucketRegistry, RateGuard
from .utils.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging(app.state.settings.log_level)
    logger = logging.getLogger(__name__)
    logger.info("Starting Taskflow application")

    # Create database tables
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    # Shutdown
    logger.info("Shutting down Taskflow application")
    await app.state.engine.dispose()


async def taskflow_error_handler(request: Request, exc: TaskflowError) -> JSONResponse:
    """Render workflow errors with their status code and a machine-readable code"""
    logging.getLogger(__name__).warning(
        "%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(settings: Optional[Settings] = None, rate_guard: Optional[RateGuard] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Project, sprint and task workflow backend",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.session_factory = build_session_factory(app.state.engine)
    app.state.rate_guard = rate_guard or RateGuard(
        BucketRegistry(
            capacity=settings.ai_rate_limit_capacity,
            refill_tokens=settings.ai_rate_limit_refill,
            interval=settings.ai_rate_limit_interval_seconds
        )
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TaskflowError, taskflow_error_handler)

    # Include API routes
    app.include_router(api_router, prefix="/api/v1")

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "taskflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=app.state.settings.debug
    )
