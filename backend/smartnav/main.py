import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth.engine import AuthorizationEngine
from .auth.policy import DEFAULT_POLICY, Policy
from .config import Settings, get_settings
from .domain.ports.resources import UserProfilePort
from .domain.ports.token import TokenVerifier
from .errors import (
    HTTP_422_UNPROCESSABLE,
    AppError,
    InternalError,
    error_payload,
    resolve_error_message,
)
from .routers import auth
from .security.token_inspection import JWTTokenVerifier

log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()


def _resolve_log_level(value: str) -> int:
    level = logging.getLevelName(value)
    return level if isinstance(level, int) else logging.INFO


log_level = _resolve_log_level(log_level_name)

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
logger = logging.getLogger("smartnav")
logger.setLevel(log_level)


def _log_error(request: Request, status_code: int, message: str, exc: Exception | None = None) -> None:
    request_id = request.headers.get("x-request-id")
    log_message = (
        f"[{status_code}] path={request.url.path} request_id={request_id or 'n/a'} message={message}"
    )
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(log_message, exc_info=exc)
    else:
        logger.warning(log_message)


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    _log_error(request, exc.status_code, exc.message, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(exc.message, exc.details),
    )


async def handle_http_exception(
    request: Request, exc: HTTPException | StarletteHTTPException
) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) and exc.detail.strip() else None
    message = detail or resolve_error_message(exc.status_code)
    _log_error(request, exc.status_code, message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_payload(message),
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = "Request validation failed"
    _log_error(request, HTTP_422_UNPROCESSABLE, message)
    return JSONResponse(
        status_code=HTTP_422_UNPROCESSABLE,
        content=error_payload(message, jsonable_encoder(exc.errors())),
    )


async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    _log_error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, InternalError.message, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_payload(InternalError.message),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unhandled_exception)


def _load_policy(settings: Settings) -> Policy:
    if settings.policy_path:
        policy = Policy.load(settings.policy_path)
        logger.info("Loaded authorization policy from %s", settings.policy_path)
        return policy
    return DEFAULT_POLICY


def create_app(
    settings: Settings | None = None,
    *,
    engine: AuthorizationEngine | None = None,
    token_verifier: TokenVerifier | None = None,
    profile_port: UserProfilePort | None = None,
) -> FastAPI:
    """
    Build the API application.

    The engine, token verifier and profile store are built once here and
    shared by every request through app.state.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting application")
        if settings.debug:
            logger.warning("DEBUG=true, do not use in production")
        yield

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

    app.state.authz_engine = engine or AuthorizationEngine(_load_policy(settings))
    if token_verifier is None and settings.secret_key:
        token_verifier = JWTTokenVerifier(
            settings.secret_key,
            algorithm=settings.algorithm,
            audience=settings.token_audience,
        )
    app.state.token_verifier = token_verifier
    app.state.user_profiles = profile_port

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    install_exception_handlers(app)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> Response:
        return JSONResponse(status_code=status.HTTP_200_OK, content={"status": "ok"})

    return app
