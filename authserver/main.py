"""Device Auth Server - FastAPI Application Entry Point."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from authserver.api.system import VERSION
from authserver.config import settings
from authserver.errors import DeviceAuthError, UpstreamError
from authserver.services.admin_service import AdminService
from authserver.services.auth_service import AuthService
from authserver.services.registry import DeviceRegistry
from authserver.services.snapshot_store import build_snapshot_store
from authserver.services.token_issuer import JwtTokenIssuer

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the device registry and wire the services on startup."""
    store = build_snapshot_store(settings)
    registry = DeviceRegistry(store)
    registry.load()

    app.state.registry = registry
    app.state.auth_service = AuthService(
        registry,
        JwtTokenIssuer.from_settings(settings),
        server_key=settings.server_secret,
        expires_in=settings.token_expires_in,
    )
    app.state.admin_service = AdminService(registry)
    app.state.started_at = time.monotonic()

    logger.info(
        "%s running (environment=%s, snapshot=%s)",
        settings.server_name,
        settings.environment,
        settings.snapshot_backend,
    )

    yield

    close = getattr(store, "close", None)
    if close is not None:
        close()
    logger.info("Server shutdown complete")


app = FastAPI(
    title="Device Auth Server",
    description="Issues short-lived tokens to registered IoT devices",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error responses ---

@app.exception_handler(DeviceAuthError)
async def device_auth_error_handler(request: Request, exc: DeviceAuthError):
    if isinstance(exc, UpstreamError):
        logger.error("[AUTH ERROR] %s: %s", request.url.path, exc.__cause__ or exc)
        content = {"error": exc.message}
        if settings.environment == "development" and exc.__cause__ is not None:
            content["message"] = str(exc.__cause__)
        return JSONResponse(status_code=exc.status_code, content=content)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if exc.status_code == status.HTTP_404_NOT_FOUND and detail == "Not Found":
        detail = "Endpoint not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    # Field errors are not echoed back: they can contain the submitted secret.
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("[ERROR] Unhandled error on %s", request.url.path)
    content = {"error": "Internal server error"}
    if settings.environment == "development":
        content["message"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# --- Register API routers ---
from authserver.api.admin import router as admin_router  # noqa: E402
from authserver.api.auth import router as auth_router  # noqa: E402
from authserver.api.system import router as system_router  # noqa: E402

app.include_router(auth_router)
app.include_router(admin_router)
app.include_router(system_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "authserver.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
