"""
FastAPI application for the Pace dashboard chat service.

create_app() wires the store, dashboard reader, LLM provider, tool executor,
context assembler and recording signer once and keeps them on app.state.
Run it with uvicorn's factory mode (see scripts/run_server.py).
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .schemas import HealthResponse
from .chat import router as chat_router
from .kb import router as kb_router
from .recordings import router as recordings_router
from ..agents.context import ContextAssembler
from ..agents.driver import ConversationDriver
from ..agents.executor import ToolExecutor
from ..agents.providers import LLMProvider, ProviderError, get_llm_provider
from ..core.config import (
    VERSION,
    Settings,
    load_settings,
    validate_settings,
    get_document_store,
    get_dashboard_source,
)
from ..core.dashboard import IDashboardSource
from ..core.recordings import RecordingSigner
from ..store.index import IDocumentStore
from ..util.logging import logger

PREFLIGHT_PATHS = ["/chat", "/kb", "/recording-url", "/health"]


def create_app(settings: Optional[Settings] = None,
               store: Optional[IDocumentStore] = None,
               dashboard: Optional[IDashboardSource] = None,
               provider: Optional[LLMProvider] = None,
               signer: Optional[RecordingSigner] = None) -> FastAPI:
    """
    Build the application. Anything not passed in is created from settings.

    A provider that cannot be constructed (e.g. no API key) does not stop the
    app from starting; /chat answers 500 until it is configured.
    """
    settings = settings or load_settings()
    logger.set_debug(settings.debug)

    for issue in validate_settings(settings):
        logger.warning(f"Configuration issue: {issue}")

    store = store or get_document_store(settings)
    dashboard = dashboard or get_dashboard_source(settings)
    signer = signer or RecordingSigner.from_settings(settings)

    provider_error = None
    if provider is None:
        try:
            provider = get_llm_provider(settings)
        except ProviderError as e:
            provider_error = str(e)
            logger.error(f"LLM provider unavailable: {e}")

    executor = ToolExecutor(store, settings.default_process_id)
    assembler = ContextAssembler(
        store,
        dashboard,
        default_process_id=settings.default_process_id,
        default_process_name=settings.default_process_name,
        chat_log_limit=settings.chat_context_logs,
    )
    driver = None
    if provider is not None:
        driver = ConversationDriver(provider, executor, assembler, store, max_rounds=settings.chat_max_rounds)

    app = FastAPI(
        title="Pace Dashboard Chat API",
        version=VERSION,
        description="Dashboard chat assistant with knowledge base and skill tools",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    app.state.dashboard = dashboard
    app.state.provider = provider
    app.state.provider_error = provider_error
    app.state.executor = executor
    app.state.assembler = assembler
    app.state.driver = driver
    app.state.recordings = signer

    def preflight():
        """Preflight requests always succeed."""
        return Response(status_code=200, headers={"Access-Control-Allow-Origin": "*"})

    for path in PREFLIGHT_PATHS:
        app.add_api_route(path, preflight, methods=["OPTIONS"], include_in_schema=False)

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint():
        """Check system health."""
        store_healthy = store.health_check()
        dashboard_healthy = dashboard.health_check()
        described = provider.describe() if provider is not None else {}
        issues = validate_settings(settings)
        if provider_error:
            issues.append(provider_error)

        return HealthResponse(
            status="healthy" if store_healthy and dashboard_healthy and driver is not None else "degraded",
            version=VERSION,
            provider=described.get("provider", settings.llm_provider),
            model=described.get("model"),
            max_rounds=driver.max_rounds if driver is not None else settings.max_rounds,
            store_backend=settings.store_backend,
            dashboard_backend=settings.dashboard_backend,
            store_healthy=store_healthy,
            dashboard_healthy=dashboard_healthy,
            issues=issues,
        )

    app.include_router(chat_router, tags=["chat"])
    app.include_router(kb_router, tags=["kb"])
    app.include_router(recordings_router, tags=["recordings"])

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Every error body is {"error": ...}."""
        if exc.status_code == 405:
            content = {"error": "Method not allowed"}
        elif isinstance(exc.detail, dict):
            content = dict(exc.detail)
        else:
            content = {"error": exc.detail}
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle all unhandled exceptions."""
        logger.error(f"Unhandled exception: {exc}")
        content = {"error": "Internal server error"}
        if settings.debug:
            content["detail"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    logger.log_operation("app_startup", "success", {
        "provider": settings.llm_provider,
        "store_backend": settings.store_backend,
        "dashboard_backend": settings.dashboard_backend,
        "version": VERSION,
    })
    return app
