"""
Kystobservatørene API - Main application entry point.

Citizen-science sea-surface observations along the Norwegian coast.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import Database
from app.core.exceptions import register_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import MaxBodySizeMiddleware, RequestLoggingMiddleware
from app.submissions.service import SubmissionService
from app.submissions.views import router as submissions_router
from app.badges.views import router as badges_router
from app.gamification.views import router as gamification_router
from app.profile.views import router as profile_router
from app.admin.moderation_views import router as admin_router

settings = get_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await Database.connect()
    yield
    # Shutdown
    await Database.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Kystobservatørene API

Collect and share geotagged photo/video observations of sea-surface conditions.

### Features

- 🌊 **Observations**: Submit photo or video observations with wind and wave direction
- 🗺️ **Map & gallery**: Public, non-deleted observations with short-lived media links
- 🏅 **Badges**: Progress toward submission, geography, streak and condition badges
- ⭐ **XP & levels**: Experience from observations and earned badges
- 🛠️ **Review console**: List, soft-delete and export observations
    """,
    lifespan=lifespan,
    docs_url=f"{API_PREFIX}/docs",
    redoc_url=f"{API_PREFIX}/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Observations carry metadata only; media goes to storage directly
app.add_middleware(MaxBodySizeMiddleware)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Include routers
routers = [
    submissions_router,
    badges_router,
    gamification_router,
    profile_router,
    admin_router,
]

for router in routers:
    app.include_router(router, prefix=API_PREFIX)


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check(response: Response):
    """Detailed health check, including a trivial store query. 503 while the store is down."""
    store_ok = Database.client is not None and await SubmissionService.ping()
    if not store_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "healthy" if store_ok else "degraded",
        "database": "connected" if store_ok else "disconnected",
        "version": settings.APP_VERSION,
    }
