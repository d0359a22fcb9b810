"""
FastAPI Main Application
"""
from contextlib import asynccontextmanager
from typing import Optional
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from natours.api.errors import register_exception_handlers
from natours.api.v1 import api_router
from natours.core.config import Settings, get_settings
from natours.core.database import build_engine, build_session_factory, check_db_connection, init_db

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"🚀 Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Environment: {settings.APP_ENV}")
        init_db(engine)
        yield
        logger.info("🛑 Shutting down")
        engine.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Tour catalog with signup, login and role-based access",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if not settings.is_production:
        request_logger = logging.getLogger("natours.requests")

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            started = time.perf_counter()
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            request_logger.info(
                f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f} ms"
            )
            return response

    register_exception_handlers(app, settings)
    app.include_router(api_router)

    @app.get("/")
    async def root():
        return {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health")
    def health_check():
        db_ok = check_db_connection(engine)
        return {
            "status": "healthy" if db_ok else "degraded",
            "database": "connected" if db_ok else "disconnected",
            "version": settings.APP_VERSION,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "natours.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
