"""
Thapa Holidays -- public site API and admin CMS backend.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging
import logging.config
from datetime import datetime
import time
import asyncio

from slowapi.errors import RateLimitExceeded

from travel_cms.core.config import settings
from travel_cms.core.monitoring import build_logging_config
from travel_cms.core.rate_limiting import limiter, rate_limit_handler
from travel_cms.db.database import init_db
from travel_cms.api import (
    health,
    routes_admin,
    routes_auth,
    routes_blog,
    routes_contact,
    routes_destinations,
    routes_enquiries,
    routes_media,
    routes_packages,
    routes_reviews,
    routes_settings,
    routes_site,
    routes_testimonials,
)

logging.config.dictConfig(build_logging_config(settings.log_level, settings.log_format))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    # The database may still be coming up alongside the app
    for attempt in range(1, 4):
        try:
            init_db()
            break
        except Exception as e:
            if attempt == 3:
                logger.error(f"Database init failed after 3 attempts: {e}")
                raise
            logger.warning(f"Database init attempt {attempt}/3 failed: {e}, retrying in 2s...")
            await asyncio.sleep(2)

    logger.info("Application startup complete -- ready to serve")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Thapa Holidays -- holiday packages, destinations, blog and enquiries.",
    docs_url="/docs" if settings.debug else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

app.add_middleware(GZipMiddleware, minimum_size=500)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


@app.middleware("http")
async def request_middleware(request: Request, call_next):
    """Request timing, access log and security headers."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start

    response.headers["X-Process-Time"] = f"{elapsed:.3f}"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s")
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "timestamp": datetime.utcnow().isoformat(),
        },
    )


app.include_router(health.router, prefix=settings.api_prefix)
app.include_router(routes_auth.router, prefix=settings.api_prefix)
# Must precede the packages router: /packages/enquiry vs /packages/{key}
app.include_router(routes_enquiries.router, prefix=settings.api_prefix)
app.include_router(routes_packages.router, prefix=settings.api_prefix)
app.include_router(routes_destinations.router, prefix=settings.api_prefix)
app.include_router(routes_blog.router, prefix=settings.api_prefix)
app.include_router(routes_testimonials.router, prefix=settings.api_prefix)
app.include_router(routes_reviews.router, prefix=settings.api_prefix)
app.include_router(routes_contact.router, prefix=settings.api_prefix)
app.include_router(routes_settings.router, prefix=settings.api_prefix)
app.include_router(routes_admin.router, prefix=settings.api_prefix)
app.include_router(routes_media.router, prefix=settings.api_prefix)
app.include_router(routes_site.router, prefix=settings.api_prefix)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "health": f"{settings.api_prefix}/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "travel_cms.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
