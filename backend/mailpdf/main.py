"""
FastAPI application entry point.
"""
import asyncio
import traceback
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mailpdf.config import Settings, get_settings
from mailpdf.routes import auth, debug, emails, health
from mailpdf.services.auth_service import get_current_credentials, require_api_config
from mailpdf.services.pdf_service import PdfRenderer
from mailpdf.services.session_service import SessionStore
from mailpdf.utils.errors import AppError, InvalidRequestError, ReconnectRequiredError, UpstreamProviderError
from mailpdf.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the session sweeper for the lifetime of the app."""
    store: SessionStore = app.state.session_store
    sweeper = asyncio.create_task(
        store.run_sweeper(app.state.settings.session_sweep_interval_seconds)
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper


def _error_response(request: Request, error: AppError) -> JSONResponse:
    logger.error(f"Request error {request.method} {request.url.path} [{error.code}] {error.status_code}: {error.message}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def _traceback_detail(exc: Exception) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def _unexpected_error_response(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unexpected error {request.method} {request.url.path}: {exc}")
    content = {
        "error": True,
        "code": "INTERNAL_ERROR",
        "message": str(exc) or "Internal server error.",
        "hint": "Check the backend logs for the stack trace.",
    }
    if not request.app.state.settings.is_production:
        content["detail"] = _traceback_detail(exc)
    return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Translate application errors into JSON responses."""

    @app.exception_handler(ReconnectRequiredError)
    async def reconnect_required_handler(request: Request, exc: ReconnectRequiredError):
        # Credentials are unusable; drop the session so the client restarts OAuth
        token = getattr(request.state, "session_token", None)
        if token:
            request.app.state.session_store.invalidate(token)
        return _error_response(request, exc)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        response = _error_response(request, exc)
        if isinstance(exc, UpstreamProviderError) and exc.is_unclassified_failure:
            logger.error(f"Unclassified provider error: {exc.provider_message!r}")
            if not request.app.state.settings.is_production:
                content = exc.to_dict()
                content["detail"] = _traceback_detail(exc)
                response = JSONResponse(status_code=exc.status_code, content=content)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        error = InvalidRequestError()
        error.details = {
            "errors": [
                {"field": ".".join(str(loc) for loc in err.get("loc", ())), "message": err.get("msg", "")}
                for err in exc.errors()
            ]
        }
        return _error_response(request, error)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Explicit settings (tests); defaults to the environment
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Gmail PDF Export",
        description="Browse a Gmail inbox and export messages as PDF",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_store = SessionStore(settings.session_ttl_seconds)
    app.state.renderer = PdfRenderer(settings)

    missing = settings.missing_config()
    if missing:
        # Keep booting so the diagnostics endpoints stay reachable
        logger.error(f"Config error - missing: {missing}")

    @app.middleware("http")
    async def catch_unexpected_errors(request: Request, call_next):
        # Registered before CORS so 500 responses still carry CORS headers
        try:
            return await call_next(request)
        except Exception as exc:
            return _unexpected_error_response(request, exc)

    # The session token travels in a header, not a cookie
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    if settings.is_development:
        @app.middleware("http")
        async def warn_missing_bearer(request: Request, call_next):
            if request.url.path.startswith("/api"):
                if not request.headers.get("authorization", "").startswith("Bearer "):
                    logger.warning(f"Dev auth warning - no Bearer token on {request.method} {request.url.path}")
            return await call_next(request)

    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(
        emails.router,
        prefix="/api",
        tags=["Emails"],
        dependencies=[Depends(require_api_config), Depends(get_current_credentials)],
    )
    if settings.is_development:
        app.include_router(debug.router, prefix="/debug", tags=["Debug"])

    return app


app = create_app()
