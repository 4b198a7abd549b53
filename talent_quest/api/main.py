from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import APIRouter, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from talent_quest.core.errors import TalentQuestError
from talent_quest.core.logging import actor_var, configure_logging, correlation_id_var
from talent_quest.core.security import get_session_claims
from talent_quest.core.settings import get_app_settings
from talent_quest.db.run_migrations import main as run_alembic
from talent_quest.db.seed import seed_all
from talent_quest.db.session import dispose_engine
from talent_quest.schemas.common import ErrorInfo, ErrorResponse, MessageResponse
from talent_quest.services.realtime import ADMIN_TOPIC, broadcast_manager

# Routers
from talent_quest.api.routes.auth import router as auth_router
from talent_quest.api.routes.contestants import router as contestants_router
from talent_quest.api.routes.guests import router as guests_router
from talent_quest.api.routes.talent_details import router as talent_details_router
from talent_quest.api.routes.singles import router as singles_router
from talent_quest.api.routes.groups import router as groups_router
from talent_quest.api.routes.qr_codes import router as qr_codes_router
from talent_quest.api.routes.emails import router as emails_router
from talent_quest.api.routes.attendance import router as attendance_router
from talent_quest.api.routes.reports import router as reports_router

# Configure structured logging once at import
configure_logging()
logger = logging.getLogger(__name__)

settings = get_app_settings()

openapi_tags = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Auth", "description": "Admin sign-in, session and staff accounts."},
    {"name": "Registration", "description": "Contestant (single or group) registration."},
    {"name": "Guests", "description": "Guest registration and administration."},
    {"name": "Talent Details", "description": "Performances joined with their students."},
    {"name": "Single Performances", "description": "Solo entries."},
    {"name": "Group Performances", "description": "Group entries and their members."},
    {"name": "QR Code Management", "description": "Issue and look up QR passes."},
    {"name": "QR Emails", "description": "Email QR passes to holders."},
    {"name": "Attendance", "description": "Entrance check-in by pass scan."},
    {"name": "Reports", "description": "Exportable lists (CSV/Excel/PDF)."},
    {"name": "WebSocket", "description": "Realtime admin feed usage."},
]


@asynccontextmanager
async def lifespan(_: FastAPI):
    """
    Run migrations and optional seeding on startup; dispose the engine on shutdown.

    Alembic's async env drives its own event loop, so it runs in a worker thread.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)

    yield
    await dispose_engine()


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
    lifespan=lifespan,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Bind a correlation id to the request for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    token_corr = correlation_id_var.set(corr)
    token_actor = actor_var.set(None)
    request.state.correlation_id = corr

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        actor_var.reset(token_actor)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"), headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


@app.exception_handler(TalentQuestError)
async def domain_exception_handler(request: Request, exc: TalentQuestError):
    """
    Map domain errors (not found, bad request, registration failure) to their status codes.
    """
    if exc.status_code >= 500:
        logger.error("%s: %s", exc.error_type, exc.message)
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api_v1.get(
    "/websocket-info",
    response_model=Dict[str, Any],
    summary="WebSocket Usage Information",
    description="Connection details for the realtime admin feed.",
    tags=["WebSocket"],
)
def websocket_info() -> Dict[str, Any]:
    """
    Describe how to connect to the admin WebSocket.

    Returns:
        JSON object with the endpoint, authentication and message format.
    """
    return {
        "usage": (
            "Connect with the admin session cookie, or pass the session JWT as a 'token' query parameter. "
            "Messages are JSON envelopes: { type: string, payload: object, at: ISO-8601, actor?: string }."
        ),
        "security": {
            "token": "Session JWT of a user with role 'admin'. Close code 4401 = not authenticated, 4403 = not admin.",
        },
        "endpoints": [
            {
                "path": "/ws/admin",
                "summary": "Registration and admin change events (server push).",
                "query": ["token?"],
                "messages": {
                    "server_to_client": [
                        "registration.created",
                        "guest.created", "guest.updated", "guest.deleted",
                        "single.updated", "single.deleted",
                        "group.updated", "group.deleted", "group.member_updated",
                        "performance.created", "performance.updated", "performance.deleted",
                        "qr.generated",
                        "attendance.recorded",
                    ],
                    "client_to_server": ["ping"],
                },
            }
        ],
        "notes": "WebSocket endpoints are not represented in OpenAPI schema; refer to this endpoint for usage.",
    }


# Include all routers under /api/v1
api_v1.include_router(auth_router)
api_v1.include_router(contestants_router)
api_v1.include_router(guests_router)
api_v1.include_router(talent_details_router)
api_v1.include_router(singles_router)
api_v1.include_router(groups_router)
api_v1.include_router(qr_codes_router)
api_v1.include_router(emails_router)
api_v1.include_router(attendance_router)
api_v1.include_router(reports_router)

# Attach api_v1 to app
app.include_router(api_v1)

# Public buckets (attachments, QR passes)
Path(settings.STORAGE_ROOT).mkdir(parents=True, exist_ok=True)
app.mount("/storage", StaticFiles(directory=settings.STORAGE_ROOT), name="storage")


def _ws_admin_claims(websocket: WebSocket) -> Optional[Dict[str, Any]]:
    token = websocket.cookies.get(settings.SESSION_COOKIE_NAME) or websocket.query_params.get("token")
    return get_session_claims(token)


# PUBLIC_INTERFACE
@app.websocket("/ws/admin")
async def ws_admin(websocket: WebSocket):
    """
    WebSocket endpoint pushing admin events (registrations, edits, passes, check-ins).

    Security:
      - Session cookie or 'token' query param must be a valid session JWT (else close 4401).
      - The session role must be 'admin' (else close 4403).
    Messages:
      - Server -> Client: WsEnvelope {type, payload, at, actor}
      - Client -> Server: optional 'ping' (answered with 'pong'); other messages ignored.
    """
    await websocket.accept()
    claims = _ws_admin_claims(websocket)
    if claims is None:
        await websocket.close(code=4401)
        return
    if claims.get("role") != "admin":
        await websocket.close(code=4403)
        return

    await broadcast_manager.connect(ADMIN_TOPIC, websocket)
    try:
        while True:
            msg = await websocket.receive_text()
            if msg and msg.lower() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        await broadcast_manager.disconnect(ADMIN_TOPIC, websocket)
    except Exception:
        logger.exception("Error on ws_admin connection")
        await broadcast_manager.disconnect(ADMIN_TOPIC, websocket)
        await websocket.close()
