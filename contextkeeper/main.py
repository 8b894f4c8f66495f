import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from contextkeeper.config import Settings, settings as default_settings
from contextkeeper.core.errors import AppError, InternalError, InvalidInput, StorageError
from contextkeeper.core.responses import ErrorResponse
from contextkeeper.database.gateway import StorageGateway
from contextkeeper.database.supabase_client import create_supabase
from contextkeeper.modules.auth.service import IdentityVerifier
from contextkeeper.modules.workspaces import routes as workspaces_routes
from contextkeeper.modules.groups import routes as groups_routes

logging.basicConfig(
    level=getattr(logging, default_settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

# Browser extensions call from their own origin, which is never in ALLOWED_ORIGINS
EXTENSION_ORIGIN_REGEX = r"^(chrome|moz)-extension://[A-Za-z0-9-]+$"


def _error_response(status_code: int, category: str, message: str, headers=None) -> JSONResponse:
    body = ErrorResponse(error=category, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


class RequestLoggingMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status = {"code": 500}

        async def send_with_status(message):
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        finally:
            logger.info(
                "%s %s -> %d in %.1fms",
                scope["method"], scope["path"], status["code"],
                (time.perf_counter() - start) * 1000,
            )


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        message = exc.message
        if isinstance(exc, StorageError) and exc.detail and not settings.is_production:
            message = f"{message}: {exc.detail}"
        return _error_response(exc.status_code, exc.category, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        problems = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
        message = "; ".join(problems) or InvalidInput.default_message
        return _error_response(InvalidInput.status_code, InvalidInput.category, message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        try:
            category = HTTPStatus(exc.status_code).phrase
        except ValueError:
            category = "Error"
        return _error_response(exc.status_code, category, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RateLimitExceeded)
    def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        response = _error_response(429, "Too Many Requests", f"Rate limit exceeded: {exc.detail}")
        return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception: %s", exc)
        if settings.is_production:
            return _error_response(500, InternalError.category, InternalError.default_message)
        return _error_response(500, InternalError.category, str(exc))


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[StorageGateway] = None,
    identity_verifier: Optional[IdentityVerifier] = None,
) -> FastAPI:
    """Build the API. Storage and identity are injected, or built from settings at startup."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application startup (%s)", settings.environment)
        if app.state.gateway is None or app.state.identity_verifier is None:
            supabase = create_supabase(settings)
            if app.state.gateway is None:
                app.state.gateway = StorageGateway(supabase, settings.workspace_write_mode)
            if app.state.identity_verifier is None:
                app.state.identity_verifier = IdentityVerifier(supabase)
        logger.info("Workspace writes use %s mode", app.state.gateway.atomic_write_mode)
        yield
        logger.info("Application shutdown")

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        redirect_slashes=False,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.identity_verifier = identity_verifier
    app.state.limiter = limiter

    _register_exception_handlers(app, settings)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_origin_regex=EXTENSION_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # Include module routes
    app.include_router(workspaces_routes.router, prefix="/api")
    app.include_router(groups_routes.router, prefix="/api")

    @app.get("/")
    async def root():
        return {"status": "API is running"}

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.environment,
        }

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "contextkeeper.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )
