"""FastAPI application factory and route setup for UploadGate."""

import logging
import secrets
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Request, Response, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from uploadgate.config import UploadGateConfig
from uploadgate.coordinator import UploadSessionCoordinator
from uploadgate.direct import DirectUploader
from uploadgate.errors import UploadError
from uploadgate.provisioner import BucketProvisioner
from uploadgate.schemas import (
    CompleteMultipartRequest,
    DirectUploadResponse,
    PreSignedPartRequest,
    PreSignedPartResponse,
    PreSignedRequest,
    PreSignedResponse,
    StartMultipartRequest,
    StartMultipartResponse,
)
from uploadgate.storage import create_storage_backend
from uploadgate.storage.backend import StorageBackend

logger = logging.getLogger(__name__)

# Module-level singleton so multiple create_app() calls (e.g. in tests)
# don't re-register the same Prometheus collectors in the global registry.
_instrumentator = None


def _get_instrumentator():
    global _instrumentator
    if _instrumentator is None:
        from prometheus_fastapi_instrumentator import Instrumentator

        _instrumentator = Instrumentator(
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics"],
        )
    return _instrumentator


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


async def bootstrap(app: FastAPI, storage: StorageBackend) -> None:
    """Initialize the backend, provision the bucket, and wire services.

    Runs once before traffic is accepted. Bucket provisioning failures abort
    startup.

    Args:
        app: The application whose state receives the services.
        storage: The guarded storage backend.
    """
    config: UploadGateConfig = app.state.config

    await storage.init()
    app.state.storage = storage

    await BucketProvisioner(storage, config.storage.bucket).ensure_bucket_ready()

    app.state.coordinator = UploadSessionCoordinator.from_config(storage, config)
    app.state.direct_uploader = DirectUploader(
        storage,
        config.storage.bucket,
        allowed_content_type=config.uploads.content_type,
        scan_status=config.uploads.scan_status,
    )
    logger.info("Storage backend ready: %s bucket=%s", config.storage.backend, config.storage.bucket)


def create_app(config: UploadGateConfig) -> FastAPI:
    """Create and configure the UploadGate FastAPI application.

    The lifespan context manager builds the storage backend from config,
    provisions the bucket, and closes the backend on shutdown.

    Args:
        config: The loaded UploadGate configuration.

    Returns:
        A configured FastAPI application ready to run.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan hook: bootstrap storage and services, close on shutdown."""
        storage = create_storage_backend(config.storage)
        await bootstrap(app, storage)

        yield

        await storage.close()
        logger.info("Storage backend closed")

    app = FastAPI(
        title="UploadGate",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config

    _register_exception_handlers(app)
    _register_middleware(app)

    if config.observability.metrics:
        import uploadgate.metrics as _metrics

        _metrics.init_metrics()
        _get_instrumentator().instrument(app, metric_namespace="uploadgate").expose(
            app, endpoint="/metrics"
        )

    _setup_routes(app)

    return app


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error_response(code: str, message: str, status: int) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": code, "message": message})


def _register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError) -> Response:
        """Render UploadError exceptions as JSON error bodies."""
        if exc.abort_error is not None:
            logger.error("%s (secondary: %s)", exc.message, exc.abort_error.message)
        return _error_response(exc.code, exc.message, exc.http_status)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
        """Map Pydantic / FastAPI validation errors to InvalidArgument."""
        messages = []
        for err in exc.errors():
            loc = " -> ".join(str(p) for p in err.get("loc", []))
            msg = err.get("msg", "Invalid value")
            messages.append(f"{loc}: {msg}" if loc else msg)
        combined = "; ".join(messages) or "Invalid request parameters"
        return _error_response("InvalidArgument", combined, 400)

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> Response:
        """Catch unexpected exceptions and return InternalError."""
        logger.exception("Unhandled exception in request handler")
        return _error_response(
            "InternalError", "We encountered an internal error. Please try again.", 500
        )


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


def _register_middleware(app: FastAPI) -> None:
    """Register the request-id and access-log middleware."""

    # Paths to suppress from per-request logging
    _QUIET_PATHS = {"/metrics", "/health"}

    @app.middleware("http")
    async def request_log_middleware(request: Request, call_next) -> Response:
        """Tag every response with a request id and log one line per request."""
        request_id = secrets.token_hex(8).upper()
        request.state.request_id = request_id
        start = time.monotonic()

        response = await call_next(request)

        duration_ms = round((time.monotonic() - start) * 1000, 2)
        response.headers["x-request-id"] = request_id

        if request.url.path not in _QUIET_PATHS:
            logger.info(
                "%s %s %d %.2fms",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": response.status_code,
                    "duration_ms": duration_ms,
                    "request_id": request_id,
                },
            )

        return response


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------


def _setup_routes(app: FastAPI) -> None:
    """Register the health check and the /videos upload routes.

    Args:
        app: The FastAPI application to attach routes to.
    """

    def coordinator() -> UploadSessionCoordinator:
        return app.state.coordinator

    @app.get("/health")
    async def health_check() -> Response:
        """Return static ``{"status": "ok"}``."""
        return JSONResponse(content={"status": "ok"})

    @app.post("/videos/start-multipart", response_model=StartMultipartResponse)
    async def start_multipart(body: StartMultipartRequest) -> StartMultipartResponse:
        """Initiate a multipart session under a fresh key."""
        session = await coordinator().start_session(body.file_name)
        return StartMultipartResponse(key=session.key, upload_id=session.upload_id)

    @app.post("/videos/{key}/pre-signed-part", response_model=PreSignedPartResponse)
    async def pre_signed_part(key: str, body: PreSignedPartRequest) -> PreSignedPartResponse:
        """Authorize the upload of one part."""
        url = await coordinator().authorize_part(key, body.upload_id, body.part_number)
        return PreSignedPartResponse(url=url)

    @app.post("/videos/{key}/complete-multipart")
    async def complete_multipart(key: str, body: CompleteMultipartRequest) -> Response:
        """Assemble the uploaded parts; 200 with an empty body on success."""
        parts = [part.to_descriptor() for part in body.parts]
        await coordinator().complete_session(key, body.upload_id, parts)
        return Response(status_code=200)

    @app.post("/videos/pre-signed", response_model=PreSignedResponse)
    async def pre_signed(body: PreSignedRequest) -> PreSignedResponse:
        """Authorize a single-shot upload of a whole file."""
        key, url = await coordinator().start_single_shot(body.file_name)
        return PreSignedResponse(key=key, url=url)

    @app.post("/videos/upload", status_code=202, response_model=DirectUploadResponse)
    async def upload(file: UploadFile = File(...)) -> DirectUploadResponse:
        """Store a small file sent as a multipart form."""
        body = await file.read()
        file_id = await app.state.direct_uploader.upload(
            file.filename or "",
            file.content_type or "",
            body,
        )
        return DirectUploadResponse(file_id=file_id)
