import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from homekeep.core.config import settings
from homekeep.core.database import build_engine
from homekeep.core.errors import (
    CascadeDeleteIncomplete,
    DuplicateKey,
    InvalidFrequencyUnit,
    NotFound,
    ProviderUnavailable,
    StorageUnavailable,
)
from homekeep.core.ratelimit import limiter
from homekeep.routers import (
    demo,
    health,
    maintenance,
    notifications,
    properties,
    service_providers,
    subscription,
    warranties,
)
from homekeep.services.tracker import TrackerRegistry

logging.basicConfig(
    level=getattr(logging, settings.api_log_level.upper()),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = build_engine(settings.database_url)
    app.state.engine = engine
    app.state.trackers = TrackerRegistry(engine)
    logger.info("HomeKeep API starting (%s)", settings.environment)
    try:
        yield
    finally:
        await app.state.trackers.close()
        await engine.dispose()


# ─── Security headers middleware ───────────────────────────────────────────────
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        if settings.environment != "development":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


app = FastAPI(
    title="HomeKeep API",
    version="0.1.0",
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# ─── CORS ──────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=(
        ["http://localhost:3000", "http://localhost", f"http://{settings.domain}"]
        if settings.environment == "development"
        else [f"https://{settings.domain}"]
    ),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "Origin", "X-Requested-With"],
)


# ─── Domain errors ─────────────────────────────
@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    logger.error("Storage unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(DuplicateKey)
async def duplicate_key_handler(request: Request, exc: DuplicateKey):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(InvalidFrequencyUnit)
async def invalid_frequency_handler(request: Request, exc: InvalidFrequencyUnit):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(CascadeDeleteIncomplete)
async def cascade_incomplete_handler(request: Request, exc: CascadeDeleteIncomplete):
    return JSONResponse(
        status_code=500,
        content={"detail": "Delete did not finish. Retry the request to complete it."},
    )


@app.exception_handler(ProviderUnavailable)
async def provider_unavailable_handler(request: Request, exc: ProviderUnavailable):
    logger.warning("Provider error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "External service unavailable"})


# ─── Routers ──────────────────────────────────
app.include_router(health.router)
app.include_router(properties.router, prefix="/api/v1")
app.include_router(maintenance.router, prefix="/api/v1")
app.include_router(warranties.router, prefix="/api/v1")
app.include_router(service_providers.router, prefix="/api/v1")
app.include_router(subscription.router, prefix="/api/v1")
app.include_router(notifications.router, prefix="/api/v1")
app.include_router(demo.router, prefix="/api/v1")
