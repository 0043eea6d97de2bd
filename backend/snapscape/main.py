"""
Main FastAPI application
Entry point for the SnapScape photo competition API
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from contextlib import asynccontextmanager
import logging

from snapscape.core.config import settings
from snapscape.core.security import limiter, get_security_headers
from snapscape.core.database import init_db, close_db
from snapscape.core.exceptions import SnapScapeError
from snapscape.core.redis import init_redis, get_redis_client, close_redis

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ============================================================================
# LIFESPAN CONTEXT MANAGER
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting SnapScape API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    await init_db()
    logger.info("Database tables ready")

    # Redis is optional: leaderboard caching is skipped without it
    if settings.REDIS_URL:
        try:
            await init_redis(settings.REDIS_URL)
            logger.info("Redis connected")
        except Exception as e:
            logger.error(f"Redis connection failed: {e}")

    logger.info("Application startup complete")

    yield  # Application runs here

    # ==================== SHUTDOWN ====================
    logger.info("Shutting down SnapScape API")

    await close_redis()
    logger.info("Redis connection closed")

    await close_db()
    logger.info("Database connections closed")

    logger.info("Shutdown complete")

# ============================================================================
# CREATE FASTAPI APP
# ============================================================================

app = FastAPI(
    title="SnapScape API",
    description="Photo competitions: submissions, voting, leaderboards and results",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan
)

# Add rate limiter
app.state.limiter = limiter

# ============================================================================
# MIDDLEWARE
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for key, value in get_security_headers().items():
        response.headers[key] = value
    return response


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Rate limit exceeded. Please try again later.",
            "retry_after": getattr(exc, "retry_after", None)
        }
    )

@app.exception_handler(SnapScapeError)
async def domain_error_handler(request: Request, exc: SnapScapeError):
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message}
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "error": str(exc),
                "type": type(exc).__name__
            }
        )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )

# ============================================================================
# ROOT ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    return {
        "message": "SnapScape API",
        "version": "1.0.0",
        "status": "operational",
        "redis_status": "connected" if get_redis_client() else "disconnected"
    }

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "services": {
            "redis": "up" if get_redis_client() else "down",
        }
    }

# ============================================================================
# API ROUTES
# ============================================================================

from snapscape.api import (  # noqa: E402
    admin,
    auth,
    competitions,
    cron,
    feedback,
    notifications,
    ratings,
    settings as site_settings,
    submissions,
    users,
)

app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(competitions.router, prefix="/competitions", tags=["Competitions"])
app.include_router(submissions.router, prefix="/submissions", tags=["Submissions"])
app.include_router(ratings.router, prefix="/ratings", tags=["Ratings"])
app.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
app.include_router(feedback.router, tags=["Feedback"])
app.include_router(site_settings.router, prefix="/settings", tags=["Settings"])
app.include_router(cron.router, prefix="/cron", tags=["Cron"])
app.include_router(admin.router)

# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "snapscape.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
