"""Tasktrack - personal task tracking API."""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.dependencies import apply_rotated_session
from app.errors import ApiError
from app.rate_limit import limiter
from app.routers import auth_router, tasks_router, users_router
from app.schemas.common import ApiResponse
from app.services.profile_image import PROFILE_SUBDIR
from app.services.tokens import get_token_service

APP_NAME = "tasktrack"
APP_VERSION = "0.1.0"

# Logging
logger = logging.getLogger("tasktrack")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing secrets raise ConfigurationError here, before any request is served.
    get_token_service()
    Path(settings.UPLOAD_DIR, PROFILE_SUBDIR).mkdir(parents=True, exist_ok=True)
    logger.info("Tasktrack started (env=%s)", settings.APP_ENV)
    yield


app = FastAPI(title="Tasktrack", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not request.url.path.startswith(self.DOCS_PATHS):
            response.headers["Content-Security-Policy"] = "default-src 'self'; img-src 'self' data:; frame-ancestors 'none'"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = (settings.MAX_PROFILE_IMAGE_MB + 1) * 1024 * 1024  # image limit plus form overhead

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content=ApiResponse.build(413, None, "Request body too large"))
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = ("/api/v1/auth/", "/api/v1/users/", "/api/v1/tasks")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        method = request.method
        if method in ("POST", "PATCH", "DELETE") and path.startswith(self.AUDIT_PATHS):
            user = getattr(request.state, "user", None)
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) user=%s from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                user.id if user else "-",
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Stored profile images
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")

# API routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(tasks_router)


# --- Error handlers: everything leaves as the standard envelope ---
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors, including ApiError subclasses, as the envelope."""
    data = exc.data if isinstance(exc, ApiError) else None
    response = JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse.build(exc.status_code, data, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )
    return apply_rotated_session(request, response)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Turn request validation failures into a 400 with field-level messages."""
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        errors.append({"field": ".".join(loc), "message": error.get("msg", "Invalid value")})
    response = JSONResponse(status_code=400, content=ApiResponse.build(400, {"errors": errors}, "Validation failed"))
    return apply_rotated_session(request, response)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded."""
    return JSONResponse(status_code=429, content=ApiResponse.build(429, None, "Rate limit exceeded. Try again later."))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors and hide their details from the client."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    response = JSONResponse(status_code=500, content=ApiResponse.build(500, None, "Internal server error"))
    return apply_rotated_session(request, response)


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": APP_NAME, "version": APP_VERSION}
