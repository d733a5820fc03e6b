"""
Blueprint Stream - Main Entry Point
HTTP API: SSE blueprint generation, stored blueprints, analytics
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from injector import Injector
from prometheus_client import CONTENT_TYPE_LATEST

from . import __version__
from .clients import UpstreamClient
from .core import (
    RequestInvalid,
    Settings,
    configure_logging,
    create_container,
    extract_timestamp,
    get_logger,
    get_settings,
)
from .core.json import JSONParseError, loads_object
from .handlers import GenerateHandler
from .monitoring import MetricsCollector
from .prompts import all_platforms, get_profile
from .services import AnalyticsCollector, BlueprintStatus, BlueprintStore, QualityAssessor

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup, release the provider client on shutdown"""
    settings: Settings = app.state.container.get(Settings)
    configure_logging(settings.log_level, settings.json_logs)
    logger.info("service_starting", host=settings.host, port=settings.port, version=__version__)

    yield

    logger.info("service_stopping")
    await app.state.container.get(UpstreamClient).aclose()


# ============================================================================
# Dependencies
# ============================================================================

def get_container(request: Request) -> Injector:
    return request.app.state.container


def get_store(container: Injector = Depends(get_container)) -> BlueprintStore:
    return container.get(BlueprintStore)


def get_analytics(container: Injector = Depends(get_container)) -> AnalyticsCollector:
    return container.get(AnalyticsCollector)


async def read_json_object(request: Request) -> dict[str, Any]:
    """Decode the request body as a JSON object or raise RequestInvalid."""
    body = await request.body()
    try:
        return loads_object(body)
    except JSONParseError as e:
        raise RequestInvalid("Request body must be a JSON object") from e


def not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"message": "Blueprint not found"})


# ============================================================================
# Application
# ============================================================================

def create_app(container: Injector | None = None) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        container: Injector to resolve collaborators from (defaults to one
            built from environment settings)
    """
    container = container or create_container(get_settings())
    settings = container.get(Settings)

    app = FastAPI(
        title="Blueprint Stream",
        description="Streams platform-tailored technical blueprints over SSE",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestInvalid)
    async def request_invalid_handler(request: Request, exc: RequestInvalid) -> JSONResponse:
        logger.warning("request_invalid", path=request.url.path, error=exc.user_message)
        return JSONResponse(
            status_code=400, content={"message": exc.user_message, "errors": exc.errors}
        )

    # ------------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------------

    @app.post("/generate")
    @app.post("/api/blueprint/generate")
    async def generate(request: Request, container: Injector = Depends(get_container)):
        """Stream a blueprint as SSE chunk/complete/error frames"""
        payload = await read_json_object(request)
        return container.get(GenerateHandler).stream(payload)

    # ------------------------------------------------------------------------
    # Stored blueprints
    # ------------------------------------------------------------------------

    @app.get("/api/blueprints")
    async def list_blueprints(
        user_id: str | None = None, store: BlueprintStore = Depends(get_store)
    ):
        if user_id:
            records = await store.list_for_user(user_id)
        else:
            records = await store.list_recent()
        return [record.to_api() for record in records]

    @app.get("/api/blueprints/{blueprint_id}")
    async def get_blueprint(blueprint_id: str, store: BlueprintStore = Depends(get_store)):
        record = await store.get_by_id(blueprint_id)
        if record is None:
            return not_found()
        return record.to_api()

    @app.delete("/api/blueprints/{blueprint_id}", status_code=204)
    async def delete_blueprint(blueprint_id: str, store: BlueprintStore = Depends(get_store)):
        if not await store.delete(blueprint_id):
            return not_found()
        created = extract_timestamp(blueprint_id)
        age = (datetime.now(timezone.utc) - created).total_seconds() if created else None
        logger.info("blueprint_deleted", blueprint_id=blueprint_id, age_s=age)
        return Response(status_code=204)

    @app.get("/api/blueprints/{blueprint_id}/quality")
    async def blueprint_quality(
        blueprint_id: str,
        store: BlueprintStore = Depends(get_store),
        container: Injector = Depends(get_container),
    ):
        """Score stored content for completeness and platform fit"""
        record = await store.get_by_id(blueprint_id)
        if record is None:
            return not_found()
        if record.status == BlueprintStatus.GENERATING:
            return JSONResponse(
                status_code=409, content={"message": "Blueprint is still generating"}
            )
        report = container.get(QualityAssessor).assess(
            record.content, record.platform, record.prompt
        )
        return report.model_dump()

    @app.post("/api/test-api-key")
    async def test_api_key(request: Request, container: Injector = Depends(get_container)):
        """Check a DeepSeek key against the provider"""
        payload = await read_json_object(request)
        api_key = payload.get("apiKey")
        if not isinstance(api_key, str) or not api_key.strip():
            return JSONResponse(status_code=400, content={"message": "API key is required"})

        if await container.get(UpstreamClient).verify_credential(api_key):
            return {"valid": True, "message": "API key is valid"}
        return JSONResponse(
            status_code=400, content={"valid": False, "message": "Invalid API key"}
        )

    @app.get("/api/platforms")
    async def list_platforms():
        return [
            {
                "id": platform.value,
                "name": get_profile(platform).name,
                "vendor": get_profile(platform).vendor,
                "primaryFunction": get_profile(platform).primary_function,
            }
            for platform in all_platforms()
        ]

    # ------------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------------

    @app.get("/api/analytics/metrics")
    async def analytics_metrics(
        store: BlueprintStore = Depends(get_store),
        analytics: AnalyticsCollector = Depends(get_analytics),
    ):
        records = await store.list_recent(limit=None)
        return analytics.usage_metrics(records)

    @app.get("/api/analytics/health")
    async def analytics_health(analytics: AnalyticsCollector = Depends(get_analytics)):
        return analytics.system_health()

    @app.post("/api/analytics/track")
    async def analytics_track(
        request: Request, analytics: AnalyticsCollector = Depends(get_analytics)
    ):
        payload = await read_json_object(request)
        event = payload.get("event")
        if not isinstance(event, str) or not event:
            return JSONResponse(status_code=400, content={"message": "Event name is required"})

        properties = payload.get("properties")
        analytics.track(
            event,
            payload.get("userId"),
            properties if isinstance(properties, dict) else None,
        )
        return {"success": True}

    # ------------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------------

    @app.get("/")
    async def root():
        """Health check"""
        return {"service": "blueprint-stream", "status": "running", "version": __version__}

    @app.get("/health")
    async def health():
        """Detailed health check"""
        return {"status": "healthy", "platforms": len(all_platforms())}

    @app.get("/metrics")
    async def metrics(container: Injector = Depends(get_container)):
        """Prometheus metrics"""
        return Response(
            content=container.get(MetricsCollector).get_metrics(),
            media_type=CONTENT_TYPE_LATEST,
        )

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn"""
    settings = get_settings()
    uvicorn.run(
        "blueprint_stream.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
