"""
FastAPI application for the spreadsheet records service.

Run with:

    uvicorn api.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Tuple

import redis
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from api.config import settings, ensure_temp_dir
from api.routers import excel, import_router, records, websocket
from api.schemas.common import ErrorResponse, HealthCheckResponse
from backend.database import engine, SessionLocal
from backend.models.schema import Base
from services.exceptions import ParseError, SpreadsheetImportError


def configure_logging():
    """Log to LOG_FILE and the console at LOG_LEVEL."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
        handlers=[logging.FileHandler(settings.LOG_FILE), logging.StreamHandler()]
    )


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables and the upload directory on startup."""
    logger.info(f"Starting {settings.API_TITLE} v{settings.API_VERSION}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[-1]}")  # Hide credentials

    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")

    ensure_temp_dir()
    yield
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS
)

app.include_router(excel.router, prefix=settings.API_PREFIX)
app.include_router(import_router.router, prefix=settings.API_PREFIX)
app.include_router(records.router, prefix=settings.API_PREFIX)
app.include_router(websocket.router)  # WebSocket doesn't use /api prefix


def _error_response(request: Request, status_code: int, error: str, detail=None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, path=str(request.url))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode='json'))


@app.exception_handler(SpreadsheetImportError)
async def import_error_handler(request: Request, exc: SpreadsheetImportError):
    """Service errors not already mapped by a router."""
    if isinstance(exc, ParseError):
        return _error_response(request, status.HTTP_400_BAD_REQUEST, str(exc))

    logger.error(f"Store error: {exc}", exc_info=True)
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc),
                           {'type': type(exc).__name__})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    detail = {'message': str(exc)} if settings.DEBUG else None
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR,
                           'Internal server error', detail)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} - {response.status_code}")
    return response


# Health checks: each returns (component status, overall status it implies)

def _check_database() -> Tuple[str, str]:
    try:
        with SessionLocal() as session:
            session.execute(text('SELECT 1'))
        return 'connected', 'healthy'
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return 'disconnected', 'unhealthy'


def _check_redis() -> Tuple[str, str]:
    try:
        redis.Redis.from_url(settings.REDIS_URL, socket_connect_timeout=1).ping()
        return 'connected', 'healthy'
    except redis.RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return 'disconnected', 'degraded'


def _check_celery() -> Tuple[str, str]:
    from tasks.celery_app import celery_app

    try:
        workers = celery_app.control.inspect(timeout=1.0).ping()
    except Exception as e:
        logger.error(f"Celery health check failed: {e}")
        return 'unknown', 'degraded'

    if not workers:
        return 'no workers', 'degraded'
    return f'active ({len(workers)} workers)', 'healthy'


@app.get('/health', response_model=HealthCheckResponse, tags=['health'])
async def health_check():
    """
    Report connectivity to the database, Redis and Celery workers.

    Overall status is `unhealthy` without a database, `degraded` when Redis
    or the workers are unavailable, otherwise `healthy`.
    """
    checks = {
        'database': _check_database(),
        'redis': _check_redis(),
        'celery': _check_celery(),
    }

    overall = 'healthy'
    for _, implied in checks.values():
        if implied == 'unhealthy' or (implied == 'degraded' and overall == 'healthy'):
            overall = implied

    return HealthCheckResponse(
        status=overall,
        timestamp=datetime.utcnow(),
        version=settings.API_VERSION,
        **{name: component for name, (component, _) in checks.items()}
    )


@app.get('/api/ping', tags=['health'])
async def ping():
    """Liveness check for load balancers."""
    return {'ping': 'pong'}


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'api.main:app',
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
