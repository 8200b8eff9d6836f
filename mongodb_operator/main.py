"""
Main FastAPI application entry point.
Exposes health probes and the StatefulSet reconcile endpoint of the MongoDB operator.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mongodb_operator.api.v1 import health, statefulsets
from mongodb_operator.config.logging import configure_logging, get_logger
from mongodb_operator.config.settings import settings
from mongodb_operator.exceptions import OperatorException
from mongodb_operator.services.statefulset_store import StatefulSetStore, create_api_client

# Configure logging
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.
    Creates the Kubernetes client on startup and closes it on shutdown.
    """
    logger.info(
        "application_starting",
        version=settings.app_version,
        environment=settings.environment,
    )

    app.state.store = None
    try:
        api_client = await create_api_client(settings)
        app.state.store = StatefulSetStore(
            api_client, request_timeout=settings.k8s_request_timeout_seconds
        )
        logger.info("kubernetes_client_initialized")
    except OperatorException as e:
        # Stay up so the readiness probe can report the problem
        logger.error("kubernetes_client_initialization_failed", error=e.message)

    yield

    logger.info("application_shutting_down")
    if app.state.store is not None:
        await app.state.store.close()
        app.state.store = None
    logger.info("application_stopped")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Reconciliation core of the MongoDB operator",
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)


# Exception handlers
@app.exception_handler(OperatorException)
async def operator_exception_handler(request: Request, exc: OperatorException) -> JSONResponse:
    """Handle custom operator exceptions."""
    logger.error(
        "operator_exception",
        path=request.url.path,
        method=request.method,
        error=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.message,
                "details": exc.details,
                "status_code": exc.status_code,
            }
        },
    )


def _sanitize_errors(errors):
    """Sanitize Pydantic validation errors to be JSON serializable."""
    sanitized = []
    for error in errors:
        sanitized_error = {}
        for key, value in error.items():
            if key == 'ctx' and isinstance(value, dict):
                sanitized_error[key] = {k: str(v) for k, v in value.items()}
            elif isinstance(value, (str, int, float, bool, type(None))):
                sanitized_error[key] = value
            elif isinstance(value, (list, tuple)):
                sanitized_error[key] = list(value)
            else:
                sanitized_error[key] = str(value)
        sanitized.append(sanitized_error)
    return sanitized


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = _sanitize_errors(exc.errors())

    logger.warning(
        "validation_error",
        path=request.url.path,
        method=request.method,
        errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "message": "Validation error",
                "details": errors,
                "status_code": 422,
            }
        },
    )


# Include routers
app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(statefulsets.router, prefix="/api/v1/statefulsets", tags=["StatefulSets"])


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "running",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mongodb_operator.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
