"""SafeCircle FastAPI application"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
import logging
import time
import traceback
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from safecircle.config import settings
from safecircle.core.database import init_db, SessionLocal
from safecircle.core.exceptions import AuthenticationError, BaseAPIException
from safecircle.schemas.response import ErrorResponse
from safecircle.api.v1 import auth, users, community, qna


def configure_logging() -> None:
    """Log to stderr and to the configured log file"""
    log_file = Path(settings.get_log_file())
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file), logging.StreamHandler()],
    )


configure_logging()
logger = logging.getLogger(__name__)

REQUEST_COUNT = Counter(
    "safecircle_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "safecircle_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
AUTH_FAILURES = Counter(
    "safecircle_auth_failures_total",
    "Rejected credentials and tokens",
    ["reason"],
)

SLOW_REQUEST_SECONDS = 1.0


def _error_body(request: Request, message: str, details: Optional[Any] = None) -> dict:
    return ErrorResponse(error=message, details=details, path=request.url.path).model_dump()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to start with weak production secrets or an unmigrated database"""
    settings.validate_security_settings()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")
    try:
        init_db()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise
    yield
    logger.info(f"Shutting down {settings.APP_NAME}")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Credentials are required for the refresh cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def observe_request(request: Request, call_next):
    """Tag each request with an id, set security headers and record metrics"""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    request.state.request_id = request_id

    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    response.headers.update({
        "X-Request-ID": request_id,
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    })

    # Label by route template so ids in paths don't explode cardinality
    route = request.scope.get("route")
    path = getattr(route, "path", request.url.path)
    REQUEST_COUNT.labels(request.method, path, str(response.status_code)).inc()
    REQUEST_LATENCY.labels(request.method, path).observe(elapsed)

    if elapsed > SLOW_REQUEST_SECONDS:
        logger.warning(f"Slow request {request.method} {path} {elapsed:.2f}s id={request_id}")
    return response


@app.exception_handler(BaseAPIException)
async def api_exception_handler(request: Request, exc: BaseAPIException):
    """Map domain errors onto the JSON error envelope"""
    headers = None
    if isinstance(exc, AuthenticationError):
        AUTH_FAILURES.labels(type(exc).__name__).inc()
        headers = {"WWW-Authenticate": "Bearer"}

    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.message, exc.details),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.info(f"Validation failed on {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, "Validation failed", errors),
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "A database error occurred. Please try again later."),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled exception on {request.method} {request.url.path}: {exc}\n{traceback.format_exc()}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "An unexpected error occurred."),
    )


@app.get("/health")
def health_check():
    """Liveness plus a database round trip"""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = {"ok": True, "error": None}
    except SQLAlchemyError as exc:
        database = {"ok": False, "error": str(exc)}
    finally:
        db.close()

    return {
        "status": "healthy" if database["ok"] else "degraded",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "readiness": {"database": database},
    }


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/")
def root():
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/api/docs" if settings.DEBUG else "disabled",
    }


app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/v1/users", tags=["Users"])
app.include_router(community.router, prefix="/api/v1/community", tags=["Community"])
app.include_router(qna.router, prefix="/api/v1/qna", tags=["Q&A"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "safecircle.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS,
    )
