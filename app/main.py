from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
import logging
import time
import uuid

from .config import settings
from .database import create_tables
from .services.scheduler import start_scheduler, stop_scheduler
from .utils.errors import AppError, error_code_for_status
from .utils.logging_config import setup_logging, get_logger, set_request_context, clear_request_context
from .utils.rate_limiter import limiter

# Import all routers
from .routers import apartment, reservations, availability, experiences, invites, groups, chat
from .routers import reviews, notifications, admin, health

logger = logging.getLogger(__name__)
request_logger = get_logger("app.requests")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    setup_logging(level=settings.log_level, json_format=settings.log_json)

    logger.info(f"Starting rihla-backend ({settings.environment})")
    logger.info(f"CORS origins: {settings.cors_origins}")

    create_tables()

    if settings.scheduler_enabled:
        start_scheduler()
    else:
        logger.info("Scheduler disabled, reservation sweep not started")

    yield

    logger.info("Shutting down rihla-backend")
    if settings.scheduler_enabled:
        stop_scheduler()


# Create FastAPI app
app = FastAPI(
    title="Rihla Backend API",
    description="Stays and experiences booking",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiter state
app.state.limiter = limiter


# ================================
# CORS MIDDLEWARE - MUST BE FIRST!
# ================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# Request ID Middleware
class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        start = time.time()
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            request_logger.api_request(
                request.method,
                request.url.path,
                response.status_code,
                round((time.time() - start) * 1000, 2),
            )
            return response
        finally:
            clear_request_context()


# Add other middleware AFTER CORS
app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


# ================================
# ERROR HANDLERS
# ================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error_code_for_status(exc.status_code), "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else "Invalid request payload"
    return JSONResponse(
        status_code=422,
        content={"error": "invalid_payload", "message": message},
    )


# Rate limit handler
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"error": "rate_limited", "message": "Too many requests, try again later"}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "server_error", "message": "Internal server error"},
    )


# Include routers
app.include_router(apartment.router)
app.include_router(reservations.router)
app.include_router(availability.router)
app.include_router(experiences.router)
app.include_router(invites.router)
app.include_router(groups.router)
app.include_router(chat.router)
app.include_router(reviews.router)
app.include_router(notifications.router)
app.include_router(admin.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {
        "message": "Rihla Backend API",
        "version": "1.0.0",
        "docs": "/docs",
        "status": "running"
    }
