"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from digest_api.api import auth, health, legacy, reports
from digest_api.config import get_settings
from digest_api.db.session import engine, init_db
from digest_api.errors import DigestError
from digest_api.middleware.rate_limit import limiter
from digest_api.services.report_service import build_report_service
from digest_api.services.scheduler import InProcessReportScheduler

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Cognition Digest API...")

    try:
        await init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    app.state.report_service = build_report_service(settings, engine)
    logger.info(f"Report completion scheduler: {settings.report_scheduler}")

    yield

    logger.info("Shutting down Cognition Digest API...")
    scheduler = app.state.report_service.scheduler
    if isinstance(scheduler, InProcessReportScheduler):
        await scheduler.drain()
    await engine.dispose()


app = FastAPI(
    title="Cognition Digest API",
    description="""
## Digest reports for videos, podcasts and articles

Submit a content source and receive a summary by email or webhook.
Report creation returns immediately with status `processing`; poll
`GET /api/reports/{report_id}` until it is `completed`.

### Authentication
Every `/api` endpoint requires either a session cookie (sign in via
`/auth/google`) or a token:
```
Authorization: Bearer <token>
```
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url=None,
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def describe_validation_errors(exc: RequestValidationError) -> str:
    """Turn request validation errors into a single client-facing message."""
    missing = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(loc)
        if error["type"] == "extra_forbidden":
            return f"Invalid payload: unexpected property '{field}'"
        if error["type"] == "missing":
            missing.append(field or "body")
            continue
        message = error.get("msg", "invalid value").removeprefix("Value error, ")
        return f"Invalid payload: {message}" if field == "createdAt" else f"Invalid payload: {field}: {message}"
    return f"Missing required fields: {', '.join(missing)}"


@app.exception_handler(DigestError)
async def digest_error_handler(request: Request, exc: DigestError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return _error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(400, describe_validation_errors(exc))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return _error(429, f"Rate limit exceeded: {exc.detail}")


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    logger.exception(f"Unhandled exception: {exc}")
    return _error(500, "Internal Server Error")


# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(reports.router)
app.include_router(legacy.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "digest_api.main:app",
        host="0.0.0.0",
        port=4000,
        reload=settings.debug,
    )
