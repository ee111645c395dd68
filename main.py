"""
FastAPI application entry point for the bulk purchase patient-link service.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from bulklink.config import settings
from bulklink.exceptions import BulkLinkError, Gone
from bulklink.logging_config import mask_token, setup_logging
from bulklink.rate_limit import limiter
from bulklink.routers import admin, catalog, client, patient

# Get logger for request logging
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

# Configure logging
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info("Starting up bulk-link API...")
    yield
    logger.info("Shutting down bulk-link API...")


app = FastAPI(
    title="Bulk Link API",
    description="Bulk purchase ledger and single-use patient links",
    version="0.1.0",
    lifespan=lifespan
)

# Rate limiter (limits are declared on the routes)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def bulk_link_error_handler(request: Request, exc: BulkLinkError) -> JSONResponse:
    """Render domain errors as ``{"message": ..., "reason": ...}``."""
    content = {"message": exc.message}
    if isinstance(exc, Gone):
        content["reason"] = exc.reasons.to_dict()
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=content)


app.add_exception_handler(BulkLinkError, bulk_link_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with method, path and response status.

    Patient link tokens are capabilities, so they are cut short in the log.
    """
    path = request.url.path
    parts = path.split("/")
    if path.startswith("/api/patient/link/") and len(parts) > 4 and parts[4]:
        parts[4] = mask_token(parts[4])
        path = "/".join(parts)
    logger.info(f"Request: {request.method} {path}")

    response = await call_next(request)

    logger.info(f"Response: {request.method} {path} | Status: {response.status_code}")
    return response

# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers.update(SECURITY_HEADERS)
    return response

# Register routers
app.include_router(patient.router, tags=["patient"])
app.include_router(client.router, tags=["client"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(catalog.router, tags=["catalog"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
