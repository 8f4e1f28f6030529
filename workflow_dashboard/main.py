"""FastAPI application and main entry point for the workflow dashboard."""

import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

# Load .env into os.environ before any settings object is built
from dotenv import load_dotenv

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from workflow_dashboard import __version__
from workflow_dashboard.agents.catalog import AgentCatalog
from workflow_dashboard.agents.executor import AgentExecutor, LLMClient
from workflow_dashboard.api import github as github_api
from workflow_dashboard.api import routes as dashboard_api
from workflow_dashboard.api import websocket as websocket_api
from workflow_dashboard.api.websocket import EventHub
from workflow_dashboard.core.config import Settings
from workflow_dashboard.core.exceptions import DashboardError
from workflow_dashboard.core.logging import configure_logging
from workflow_dashboard.models.claude_client import ClaudeClient
from workflow_dashboard.storage.database import Database

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup/shutdown.

    Handles:
    - Database connectivity check and schema creation
    - Graceful shutdown and engine disposal
    """
    await startup(app)
    yield
    await shutdown(app)


async def startup(app: FastAPI) -> None:
    """Connect the persistence layer.

    Raises:
        Exception: If the database is unreachable.
    """
    try:
        await logger.ainfo("application_startup_starting")
        database: Database = app.state.database
        await database.connect()
        await database.create_schema()

        catalog: AgentCatalog = app.state.catalog
        agents = catalog.load_all_agents()
        if not agents:
            await logger.awarning("agent_catalog_empty", agents_dir=str(catalog.agents_dir))

        await logger.ainfo(
            "application_startup_complete",
            agents_available=len(agents),
            database=repr(database),
        )
    except Exception as exc:
        await logger.aerror("application_startup_failed", error=str(exc))
        raise


async def shutdown(app: FastAPI) -> None:
    """Dispose of the database engine."""
    await logger.ainfo("application_shutdown_starting")
    try:
        await app.state.database.disconnect()
    except Exception as exc:
        await logger.aerror("database_disconnection_failed", error=str(exc))
    await logger.ainfo("application_shutdown_complete")


def _error_body(message: str, exc: Optional[BaseException], debug: bool) -> dict[str, Any]:
    error: dict[str, Any] = {"message": message}
    if debug and exc is not None:
        error["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return {"error": error}


def _install_error_handlers(app: FastAPI, debug: bool) -> None:
    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
        await logger.awarning(
            "request_failed",
            path=request.url.path,
            status_code=exc.status_code,
            error=str(exc),
        )
        return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc), exc, debug))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail), None, debug),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        body = _error_body("Invalid request", None, debug)
        body["error"]["details"] = exc.errors()
        return JSONResponse(status_code=422, content=jsonable_encoder(body))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        await logger.aerror(
            "request_error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(str(exc) or "Internal server error", exc, debug),
        )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    llm_client: Optional[LLMClient] = None,
    catalog: Optional[AgentCatalog] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Collaborators not passed in are built from *settings*.

    Args:
        settings: Loaded configuration; read from the environment if omitted.
        database: Persistence handle.
        llm_client: Claude client (or a stand-in exposing ``complete``).
        catalog: Agent catalog.

    Returns:
        Configured FastAPI application instance.

    Raises:
        ConfigurationError: If no LLM client is given and the Anthropic API
            key is missing.
    """
    if settings is None:
        load_dotenv(override=False)
        settings = Settings.from_env()

    configure_logging(settings.system.log_level, settings.system.json_logs)

    if llm_client is None:
        settings.validate_startup()
        llm_client = ClaudeClient.from_settings(settings.claude)

    database = database or Database(settings.database.url, echo=settings.database.echo)
    catalog = catalog or AgentCatalog(settings.agents.agents_dir)

    app = FastAPI(
        title=settings.system.name,
        description="Run workflow agents against projects and track their executions",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.catalog = catalog
    app.state.event_hub = EventHub()
    app.state.executor = AgentExecutor(
        database=database,
        catalog=catalog,
        llm_client=llm_client,
        max_tokens=settings.claude.max_tokens,
    )

    # CORS: only the dashboard frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.server.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        await logger.ainfo(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return response

    _install_error_handlers(app, settings.system.debug)

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Liveness plus database reachability."""
        db_healthy = await app.state.database.health_check()
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "components": {
                "database": "healthy" if db_healthy else "unhealthy",
            },
        }

    app.include_router(dashboard_api.router)
    app.include_router(github_api.router)
    app.include_router(websocket_api.router)

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    load_dotenv(override=False)
    settings = Settings.from_env()
    app = create_app(settings)
    logger.info(
        "server_starting",
        host=settings.server.host,
        port=settings.server.port,
        dashboard=f"http://localhost:{settings.server.port}",
        websocket=f"ws://localhost:{settings.server.port}/ws",
    )
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    run()
