"""Upload Relay Backend Application.

This is the main entry point for the upload relay service. A client posts a
single file to ``POST /upload``; the relay validates it, forwards the bytes to
the media-hosting provider (ImageKit) and answers with the public URL.

Modules:
    - uploads: receiving layer, validation, relay service and router
    - providers: media-hosting provider adapters
    - client: sequential, progress-tracked upload client and CLI
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from app.config import get_config
from app.providers import ImageKitProvider, get_media_provider, set_media_provider
from app.uploads.errors import GENERIC_UPLOAD_ERROR, UploadError
from app.uploads.receiver import UploadSizeLimitMiddleware
from app.uploads.router import error_response, router as uploads_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# httpx/httpcore log every TCP connection and TLS handshake to the provider.
for _noisy in (
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    configured_level = getattr(logging, config.server.log_level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.server.log_level.upper())

    owns_provider = False
    imagekit = config.secrets.imagekit
    if get_media_provider() is not None:
        logger.info("Media provider already set; keeping it")
    elif imagekit.private_key:
        provider = ImageKitProvider(
            private_key=imagekit.private_key,
            public_key=imagekit.public_key,
            url_endpoint=imagekit.url_endpoint,
            upload_url=config.imagekit.upload_url,
            timeout_seconds=config.imagekit.timeout_seconds,
        )
        set_media_provider(provider)
        owns_provider = True
        logger.info("Media provider ready: %s endpoint=%s", provider.name, provider.url_endpoint)
    else:
        logger.warning("ImageKit private key not configured; uploads will fail")

    logger.info(
        f"Upload relay running on http://{config.server.host}:{config.server.port} "
        f"(POST /upload)"
    )

    yield  # Application runs here

    # Shutdown
    if owns_provider:
        set_media_provider(None)
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Upload Relay API",
    description="Relays file uploads to a media-hosting provider and returns a public URL",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(UploadSizeLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(uploads_router)


# =============================================================================
# Fallback error handlers
# =============================================================================


@app.exception_handler(UploadError)
async def upload_error_handler(request: Request, exc: UploadError):
    """Errors raised by the receiving layer before the handler runs.

    receive_upload() has already logged the rejection.
    """
    return error_response(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Malformed request on {request.url.path}: {exc.errors()}")
    return error_response(400, "Invalid upload request")


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return error_response(500, GENERIC_UPLOAD_ERROR)


# =============================================================================
# Static landing page
# =============================================================================

app.mount(
    "/static",
    StaticFiles(directory=get_config().upload.static_dir, check_dir=False),
    name="static",
)


@app.get("/", include_in_schema=False)
async def index() -> FileResponse:
    """Serve the static landing page."""
    return FileResponse(Path(get_config().upload.static_dir) / "index.html")


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}


def run() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    import uvicorn

    config = get_config()
    uvicorn.run(
        "app.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level,
    )


if __name__ == "__main__":
    run()
