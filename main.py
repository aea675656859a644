"""
Document Translation Service - Main application entry point
"""
import time
import logging
from contextlib import asynccontextmanager
from typing import Dict, Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import configuration and dependencies
from config import settings
from api.dependencies import (
    get_artifact_store,
    get_artifact_resolver,
    get_document_extractor,
    get_paper_store,
    get_past_paper_service,
    get_translation_pipeline
)

# Import API routers
from api.translation_controller import router as translation_router
from api.past_paper_controller import router as past_paper_router

# Import error handling and utilities
from utils.error_handlers import ErrorHandlingMiddleware, create_error_response, get_status_code_for_error_code
from utils.logging import setup_logging, log_api_request
from utils.exceptions import DocumentServiceException, ErrorCode
from utils.health_check import HealthChecker, is_service_ready

# Configure logging
logger = setup_logging()

# Global application state
app_state: Dict[str, Any] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup and shutdown events
    """
    # Startup
    start_time = time.time()
    app_state["start_time"] = start_time

    logger.info(f"Starting {settings.app_name} v{settings.app_version}...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")

    try:
        logger.info("Initializing core services...")

        artifact_store = get_artifact_store()
        app_state["artifact_store"] = artifact_store
        removed = artifact_store.sweep_stale()
        logger.info(f"Artifact store initialized ({removed} stale artifacts removed)")

        pipeline = get_translation_pipeline()
        app_state["pipeline"] = pipeline
        logger.info("Translation pipeline initialized")

        paper_store = get_paper_store()
        app_state["paper_store"] = paper_store
        resolver = get_artifact_resolver()
        app_state["resolver"] = resolver
        app_state["past_paper_service"] = get_past_paper_service()
        logger.info("Past paper service initialized")

        health_checker = HealthChecker(
            artifact_store=artifact_store,
            pipeline=pipeline,
            paper_store=paper_store,
            resolver=resolver
        )
        app_state["health_checker"] = health_checker
        logger.info("Health checker initialized")

        system_health = await health_checker.check_system_health()
        logger.info(f"Initial system health check: {system_health.status.value}")

        startup_time = time.time() - start_time
        logger.info(f"{settings.app_name} startup completed successfully in {startup_time:.2f} seconds")

        yield

    except Exception as e:
        logger.error(f"Failed to start {settings.app_name}: {e}")
        raise

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")

    try:
        get_document_extractor().shutdown()
        app_state.clear()
        logger.info(f"{settings.app_name} shutdown completed")

    except Exception as e:
        logger.error(f"Error during shutdown: {e}")


# Create FastAPI application with lifespan manager
app = FastAPI(
    title=settings.app_name,
    description="Translates uploaded PDF and Word documents into DOCX files and serves past exam papers",
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# Configure middleware
def configure_middleware():
    """Configure all application middleware"""

    # Security middleware - Trusted Host
    if settings.allowed_hosts and settings.allowed_hosts != "*":
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.allowed_hosts.split(",")
        )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins.split(","),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Pipeline-Run-ID", "X-Source-Language"],
        max_age=3600,  # Cache preflight requests for 1 hour
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()

        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
            duration_ms = int((time.time() - start_time) * 1000)

            log_api_request(
                method=request.method,
                path=str(request.url.path),
                status_code=response.status_code,
                duration_ms=duration_ms,
                client_ip=client_ip,
                run_id=response.headers.get("X-Pipeline-Run-ID")
            )

            response.headers["X-Response-Time"] = f"{duration_ms}ms"
            return response

        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Request failed: {request.method} {request.url.path} - {str(e)}")

            log_api_request(
                method=request.method,
                path=str(request.url.path),
                status_code=500,
                duration_ms=duration_ms,
                client_ip=client_ip
            )

            raise

    # Catch-all error handling middleware
    app.add_middleware(ErrorHandlingMiddleware)


# Configure all middleware
configure_middleware()


@app.exception_handler(DocumentServiceException)
async def document_service_exception_handler(request: Request, exc: DocumentServiceException):
    """
    Handle service exceptions with structured error responses
    """
    status_code = get_status_code_for_error_code(exc.error_code)

    if status_code >= 500:
        logger.error(f"Service exception in {request.method} {request.url.path}: {exc}", exc_info=exc.original_exception)
    else:
        logger.warning(f"Client error in {request.method} {request.url.path}: {exc}")

    return JSONResponse(
        status_code=status_code,
        content=exc.to_dict()
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle Pydantic validation errors with field-level details
    """
    logger.warning(f"Validation error in {request.method} {request.url.path}: {exc}")

    field_errors = []
    for error in exc.errors():
        field_path = " -> ".join(str(loc) for loc in error["loc"])
        field_errors.append({
            "field": field_path,
            "message": error["msg"],
            "type": error["type"]
        })

    return create_error_response(
        ErrorCode.VALIDATION_ERROR,
        "Request validation failed",
        status_code=422,
        details={"field_errors": field_errors}
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handle HTTP exceptions with consistent formatting
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTP error",
            "message": str(exc.detail),
            "code": "HTTP_ERROR",
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        },
        headers=getattr(exc, "headers", None)
    )


# Include API routers
app.include_router(translation_router)
app.include_router(past_paper_router)


@app.get("/health")
async def health_check():
    """
    Basic health check endpoint for load balancers and monitoring
    """
    return {
        "status": "healthy",
        "message": f"{settings.app_name} is running",
        "version": settings.app_version,
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
    }


@app.get("/health/detailed")
async def detailed_health_check():
    """
    Detailed health check endpoint with component status
    """
    try:
        health_checker = app_state.get("health_checker")

        if not health_checker:
            health_checker = HealthChecker(
                artifact_store=get_artifact_store(),
                pipeline=get_translation_pipeline(),
                paper_store=get_paper_store(),
                resolver=get_artifact_resolver()
            )

        system_health = await health_checker.check_system_health(include_details=True)

        response = {
            "status": system_health.status.value,
            "message": system_health.message,
            "timestamp": system_health.timestamp,
            "uptime_seconds": system_health.uptime_seconds,
            "components": [
                {
                    "name": comp.name,
                    "status": comp.status.value,
                    "message": comp.message,
                    "details": comp.details,
                    "response_time_ms": comp.response_time_ms,
                    "last_check": comp.last_check
                }
                for comp in system_health.components
            ]
        }

        # Degraded is still operational
        status_code = 503 if system_health.status.value == "unhealthy" else 200

        return JSONResponse(status_code=status_code, content=response)

    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "message": f"Health check failed: {str(e)}",
                "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
            }
        )


@app.get("/health/ready")
async def readiness_check():
    """
    Readiness check endpoint for container orchestration
    """
    if not is_service_ready(app_state.get("artifact_store"), app_state.get("paper_store")):
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "message": "Required services not initialized",
                "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
            }
        )

    return {
        "status": "ready",
        "message": "Service is ready to accept requests",
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
    }


@app.get("/health/live")
async def liveness_check():
    """
    Liveness check endpoint for container orchestration
    """
    return {
        "status": "alive",
        "message": "Service is alive",
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "uptime_seconds": int(time.time() - app_state.get("start_time", time.time()))
    }


@app.get("/")
async def root():
    """
    Root endpoint with API information
    """
    return {
        "message": f"Welcome to the {settings.app_name} API",
        "version": settings.app_version,
        "environment": settings.environment,
        "documentation": "/docs",
        "endpoints": {
            "translate_file": "POST /translate-file",
            "translate_text": "POST /api/translate",
            "list_past_papers": "GET /api/past-papers",
            "past_paper_filters": "GET /api/past-papers/filters",
            "upload_past_paper": "POST /api/past-papers/upload",
            "past_paper_file": "GET /api/past-papers/{paper_id}/file",
            "legacy_past_paper_file": "GET /api/past-papers/file?filePath=",
            "record_download": "POST /api/past-papers/{paper_id}/download",
            "health_check": "GET /health",
            "detailed_health": "GET /health/detailed",
            "readiness": "GET /health/ready",
            "liveness": "GET /health/live"
        },
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
    }


@app.get("/info")
async def application_info():
    """
    Application information endpoint
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "debug": settings.debug,
        "configuration": {
            "max_file_size_mb": settings.max_file_size_mb,
            "pdf_extraction_timeout_seconds": settings.pdf_extraction_timeout_seconds,
            "translation_provider": settings.translation_provider,
            "translation_max_chunk_chars": settings.translation_max_chunk_chars,
            "paper_store_type": settings.paper_store_type,
            "log_level": settings.log_level
        },
        "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers if not settings.debug else 1,
        reload=settings.debug,
        access_log=True,
        server_header=False,
        date_header=False
    )
