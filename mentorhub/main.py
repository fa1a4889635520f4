import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import config
from . import models  # noqa: F401 - register all tables on Base
from .database import Base, SessionLocal, engine
from .domain.admin.router import router as admin_router
from .domain.availability.router import router as availability_router
from .domain.chat.router import router as chat_router
from .domain.group_sessions.router import router as group_sessions_router
from .domain.ledger.router import router as transactions_router
from .domain.mentors.router import router as mentors_router
from .domain.notifications.router import router as notifications_router
from .domain.payouts.router import router as payouts_router
from .domain.reviews.router import router as reviews_router
from .domain.sessions.router import router as sessions_router
from .domain.users.router import auth_router, users_router
from .rate_limiter import api_limiter
from .realtime import router as realtime_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        # Another worker process may have created them first
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - rate limited routes will answer 503: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="MentorHub API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={
                    "detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."
                },
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list:
    # Pydantic puts the raw exception object under ctx for custom validators
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ {request.method} {request.url.path} - Unhandled error: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


if config.SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

logger.info(f"CORS allowed origins: {config.ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
# mentors before availability: both live under /mentors and the static
# mentor paths must win over /mentors/{mentor_id}/...
api_dependencies = [Depends(api_limiter)]
for api_router in (
    auth_router,
    users_router,
    transactions_router,
    mentors_router,
    availability_router,
    sessions_router,
    group_sessions_router,
    reviews_router,
    payouts_router,
    notifications_router,
    chat_router,
    admin_router,
):
    app.include_router(api_router, prefix="/api", dependencies=api_dependencies)

app.include_router(realtime_router)


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/detailed")
def detailed_health():
    """Report database connectivity alongside process status"""
    db = SessionLocal()
    start_time = time.time()
    try:
        db.execute(text("SELECT 1"))
        database = {"connected": True, "response_time_ms": round((time.time() - start_time) * 1000, 2)}
        status = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"❌ Database health check failed: {e}")
        database = {"connected": False, "error": str(e)}
        status = "unhealthy"
    finally:
        db.close()

    return JSONResponse(
        status_code=200 if status == "healthy" else 503,
        content={"status": status, "database": database, "timestamp": time.time()},
    )


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        info = redis_client.info()

        return {
            "status": "healthy",
            "redis": {
                "connected": True,
                "response_time_ms": round(response_time, 2),
                "version": info.get("redis_version", "unknown"),
                "used_memory_human": info.get("used_memory_human", "unknown"),
                "connected_clients": info.get("connected_clients", 0),
            },
        }
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}


os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR), name="uploads")

# Mounted last so API routes take precedence
if os.path.isdir(config.CLIENT_BUILD_DIR):
    app.mount("/", StaticFiles(directory=config.CLIENT_BUILD_DIR, html=True), name="client")
    logger.info(f"Serving client build from {config.CLIENT_BUILD_DIR}")
