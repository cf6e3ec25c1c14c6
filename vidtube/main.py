"""
VidTube API

FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vidtube.api.middleware.request_id import RequestIdMiddleware
from vidtube.api.v1 import router as api_v1_router
from vidtube.assets import AssetStore, CloudinaryAssetStore
from vidtube.config import Settings, get_settings
from vidtube.database import Database
from vidtube.kernel.errors import (
    DuplicateAccount,
    HashingFailure,
    InvalidCredentials,
    InvalidToken,
    Unauthenticated,
    UpstreamFailure,
    ValidationError,
    VidtubeError,
)
from vidtube.kernel.identity.jwt import JWTManager
from vidtube.logging_config import configure_logging, get_logger
from vidtube.schemas.common import ErrorResponse, HealthResponse

logger = get_logger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    DuplicateAccount: status.HTTP_409_CONFLICT,
    InvalidCredentials: status.HTTP_401_UNAUTHORIZED,
    InvalidToken: status.HTTP_401_UNAUTHORIZED,
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    HashingFailure: status.HTTP_500_INTERNAL_SERVER_ERROR,
    UpstreamFailure: status.HTTP_502_BAD_GATEWAY,
}


def status_for(exc: VidtubeError) -> int:
    """Most specific mapped status along the exception's MRO."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Runs startup and shutdown tasks.
    """
    settings: Settings = app.state.settings
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    logger.info("Starting %s v%s", settings.project_name, settings.version)
    await app.state.database.init()

    yield

    logger.info("Shutting down...")
    await app.state.database.close()


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


def create_app(
    settings: Optional[Settings] = None,
    asset_store: Optional[AssetStore] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Build the application with its collaborators wired explicitly."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.project_name,
        description="Accounts, credentials and session tokens for the VidTube platform.",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.database = database or Database(settings.database_url, echo=settings.debug)
    app.state.jwt_manager = JWTManager.from_settings(settings)
    app.state.asset_store = asset_store or CloudinaryAssetStore.from_settings(settings)

    # LAST added = OUTERMOST; CORS wraps everything
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(VidtubeError)
    async def vidtube_error_handler(request: Request, exc: VidtubeError):
        """Typed kernel failures become JSON errors without internal detail."""
        status_code = status_for(exc)
        req_id = _request_id(request)
        headers = {}
        if req_id:
            headers["X-Request-ID"] = req_id
        if isinstance(exc, Unauthenticated):
            headers["WWW-Authenticate"] = "Bearer"

        if status_code >= 500:
            logger.error("Server-side failure: %s", exc.code, exc_info=exc)
            body = ErrorResponse(detail=exc.message, code=exc.code, request_id=req_id)
        else:
            body = ErrorResponse(
                detail=exc.message,
                code=exc.code,
                fields=getattr(exc, "fields", None) or None,
            )
        return JSONResponse(
            status_code=status_code,
            content=body.model_dump(exclude_none=True),
            headers=headers,
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        headers = dict(exc.headers or {})
        req_id = _request_id(request)
        if req_id:
            headers["X-Request-ID"] = req_id
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append({
                "field": field,
                "message": error["msg"],
                "type": error["type"],
            })
        content = {"detail": "Validation error", "errors": errors}
        req_id = _request_id(request)
        if req_id:
            content["request_id"] = req_id
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=content,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception("Unhandled exception: %s", exc)
        req_id = _request_id(request)
        if settings.debug:
            content = {
                "detail": str(exc),
                "type": type(exc).__name__,
                "request_id": req_id,
            }
        else:
            content = {"detail": "Internal server error", "request_id": req_id}
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=content,
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Check application health."""
        reachable = await app.state.database.ping()
        return HealthResponse(
            status="ok" if reachable else "degraded",
            version=settings.version,
            database="connected" if reachable else "unavailable",
        )

    app.include_router(api_v1_router, prefix=settings.api_v1_prefix)

    return app


app = create_app()


# Main entry point for development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "vidtube.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
