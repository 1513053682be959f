import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings
from .database import StoreRegistry
from .errors import ReasonCode, StoreUnavailable
from .routers import bookings, combined, health, memberships
from .utils.logging_config import clear_request_context, get_logger, set_request_context, setup_logging
from .utils.rate_limiter import limiter

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the store handles once per process and release them on shutdown"""
    setup_logging(settings.log_level, json_format=settings.json_logs or settings.is_production)
    logger.info(f"Starting condohub ({settings.environment})")

    # Tests install their own registry before startup
    if getattr(app.state, "stores", None) is None:
        app.state.stores = StoreRegistry.from_settings(settings)
    app.state.stores.create_tables()
    logger.info("Stores ready")

    yield

    logger.info("Shutting down condohub")
    app.state.stores.dispose()


app = FastAPI(
    title="condohub API",
    description="Amenity bookings and unit memberships across the community and registry stores",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])
        request.state.request_id = request_id
        set_request_context(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Request-ID"] = request_id
        return response


app.add_middleware(RequestIdMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"success": False, "data": None, "error": None, "message": "Too many requests, try again later"}
    )


# Store trouble outside a service method (e.g. opening a session)
@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    return JSONResponse(
        status_code=503,
        content={
            "success": False,
            "data": None,
            "error": ReasonCode.STORE_UNAVAILABLE.value,
            "message": exc.message
        }
    )


app.include_router(health.router)
app.include_router(combined.router)
app.include_router(bookings.router)
app.include_router(memberships.router)


@app.get("/")
async def root():
    return {"name": "condohub", "docs": "/docs"}
