"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Logging — one basicConfig for the whole process
  2. Lifespan manager — handles startup/shutdown (DB table creation, cleanup)
  3. Middleware — CORS; rate limits live on the /api routers
  4. Exception handlers — maps domain errors to the JSON error envelope
  5. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn invoice_api.main:app --reload

Startup fails immediately if SECRET_KEY is not configured: importing
invoice_api.config raises a validation error before the app object exists.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from invoice_api.config import settings
from invoice_api.database import engine, Base
from invoice_api.exceptions import register_exception_handlers
from invoice_api.limiter import limiter
from invoice_api.routers import auth, users

import invoice_api.models  # noqa: F401  (registers tables on Base.metadata)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("invoiceapi.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
      Creates all database tables if they don't exist. Schema migrations are
      out of scope for this service; create_all is the whole story.

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    logger.info("%s %s starting up", settings.APP_NAME, settings.APP_VERSION)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database ready")
    yield
    # --- Shutdown ---
    await engine.dispose()
    logger.info("Database connections closed")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Invoice management REST API with JWT authentication",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# slowapi looks the limiter up on app.state by convention. / and /health
# are outside /api and carry no limit.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])


# ---------------------------------------------------------------------------
# Health check and index
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for deployment probes (Kubernetes, Docker, etc.).
    """
    return {
        "success": True,
        "status": "ok",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/", tags=["Health"])
async def index():
    """List the available endpoints."""
    return {
        "success": True,
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "endpoints": {
            "health": "GET /health",
            "auth": {
                "register": "POST /api/auth/register",
                "login": "POST /api/auth/login",
                "profile": "GET /api/auth/profile",
                "updateProfile": "PUT /api/auth/profile",
                "changePassword": "PUT /api/auth/change-password",
            },
            "users": {
                "list": "GET /api/users",
                "get": "GET /api/users/{id}",
                "setStatus": "PATCH /api/users/{id}/status",
            },
        },
        "docs": "/docs",
    }
