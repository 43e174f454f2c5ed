from typing import Optional
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import uuid

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trackhabit.application.api.route import chat, documents, teams, workspace
from trackhabit.domain.errors import TrackHabitError
from trackhabit.domain.orchestration.chat_orchestrator import ChatOrchestrator, CompletionClient
from trackhabit.infrastructure.config import Settings, get_settings
from trackhabit.infrastructure.llm.model_client import ModelClient
from trackhabit.infrastructure.observability.langfuse_tracing import configure_tracing
from trackhabit.infrastructure.observability.logging import metrics, setup_logging
from trackhabit.infrastructure.persistence import DataStore, build_store

logger = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[DataStore] = None,
    model_client: Optional[CompletionClient] = None
) -> FastAPI:
    """Build the API server; collaborators may be injected"""

    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format, settings.service_name)
    configure_tracing(settings.langfuse_enabled)

    store = store or build_store(settings)
    model_client = model_client or ModelClient(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Release outbound clients
        if hasattr(model_client, "aclose"):
            await model_client.aclose()
        await store.close()
        logger.info("API server shutdown")

    app = FastAPI(title="Track Habit Assistant", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.model_client = model_client
    app.state.orchestrator = ChatOrchestrator(store, model_client, settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id", "user_id")

        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(TrackHabitError)
    async def service_error_handler(request: Request, exc: TrackHabitError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", path=request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(chat.router)
    app.include_router(documents.router)
    app.include_router(workspace.router)
    app.include_router(teams.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "data_store": settings.data_store,
            "model": settings.model_name,
            "metrics": metrics.get_metrics_summary(),
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return app
