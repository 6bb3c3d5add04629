"""FastAPI application entry point for the delivery service.

This module wires the GitHub client from configuration at startup and
exposes its operations over HTTP under ``/api/github``, plus health and
Prometheus metrics endpoints.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from .api.routes import ApiError, ServiceContainer, router
from .config import DeliverySettings, get_settings
from .events.emitter import EventSinkType, create_event_emitter
from .events.metrics import generate_metrics_output
from .github.executor import RequestExecutor
from .github.mutations import MutationClient
from .github.resources import ResourceClient
from .workflow import FeatureDeliveryWorkflow

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

executor: Optional[RequestExecutor] = None


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters.

    Args:
        value: The secret value to redact.
        visible_chars: Number of characters to show at the start.

    Returns:
        Redacted string with asterisks replacing hidden characters.
    """
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: DeliverySettings) -> None:
    """Log configuration values with the token redacted."""
    logger.info("Delivery configuration:")
    logger.info("  GitHub Base URL: %s", settings.github_base_url)
    logger.info("  GitHub GraphQL URL: %s", settings.graphql_url)
    logger.info("  GitHub Token: %s", _redact_secret(settings.github_token))
    logger.info("  Repository: %s/%s", settings.github_owner, settings.github_repo)
    logger.info("  Default Base Branch: %s", settings.default_base_branch)
    logger.info("  Request Timeout Seconds: %s", settings.request_timeout_seconds)
    logger.info("  Host: %s", settings.host)
    logger.info("  Port: %s", settings.port)


def build_services(
    settings: DeliverySettings,
    gh_executor: RequestExecutor,
) -> ServiceContainer:
    """Wire the clients and the workflow around one executor.

    Args:
        settings: Validated delivery settings.
        gh_executor: Executor holding the credentials.

    Returns:
        ServiceContainer shared by every request.
    """
    mutations = MutationClient(
        gh_executor,
        default_base_branch=settings.default_base_branch,
        graphql_url=settings.graphql_url,
    )
    workflow = FeatureDeliveryWorkflow(
        mutations,
        repository=gh_executor.credentials.full_name,
        event_emitter=create_event_emitter(
            [EventSinkType.LOGGING, EventSinkType.METRICS]
        ),
    )
    return ServiceContainer(
        resources=ResourceClient(gh_executor),
        mutations=mutations,
        workflow=workflow,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown.

    Handles:
    - Configuration loading and validation
    - Logging configuration (with the token redacted)
    - Client wiring
    - Closing the HTTP client on shutdown
    """
    global executor

    logger.info("Delivery service starting up...")

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)
    _log_configuration(settings)

    executor = RequestExecutor(
        settings.credentials(),
        base_url=settings.github_base_url,
        timeout=settings.request_timeout_seconds,
    )
    app.state.services = build_services(settings, executor)

    logger.info("Delivery service started successfully")

    yield

    logger.info("Delivery service shutting down...")

    if executor is not None:
        await executor.close()

    logger.info("Delivery service shutdown complete")


app = FastAPI(
    title="Delivery Service",
    description="Branch, commit and pull request automation for a GitHub repository",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests as 400 like missing fields."""
    messages = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": messages})


@app.get("/health")
async def health():
    """Liveness probe endpoint."""
    return {"status": "ok", "message": "Server is running"}


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(generate_metrics_output(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.delivery.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
        reload=True,
    )
