"""Main FastAPI application for NetKnife Intel."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from netknife.api.v1 import intel_router
from netknife.config.logging import get_logger, setup_logging
from netknife.config.settings import Settings, get_settings
from netknife.core.cache import build_response_cache
from netknife.core.exceptions import SubjectValidationError
from netknife.core.transport import AiohttpTransport
from netknife.services.aggregator import IntelligenceAggregator

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around one shared transport, cache and aggregator."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
        logger.info("application_starting", app=settings.APP_NAME,
                    environment=settings.ENVIRONMENT.value)

        transport = AiohttpTransport(user_agent=settings.USER_AGENT)
        cache = build_response_cache(settings)
        app.state.transport = transport
        app.state.cache = cache
        app.state.aggregator = IntelligenceAggregator.from_settings(settings, transport, cache)

        yield

        # Shutdown
        logger.info("application_stopping")
        await transport.close()
        await cache.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Multi-source intelligence aggregation and risk scoring",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(SubjectValidationError)
    async def subject_validation_handler(request: Request, exc: SubjectValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    app.include_router(intel_router, prefix="/api/v1")
    return app


app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    port = int(os.environ.get("PORT", 8000))
    logger.info("starting_server", port=port)
    uvicorn.run(
        "netknife.main:app",
        host="0.0.0.0",
        port=port,
        log_level="info",
        timeout_keep_alive=30,
    )
