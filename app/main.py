# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the AquaBotAI API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   poetry run uvicorn app.main:app --reload
# =============================================================================

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.exceptions import (
    AquaBotException,
    aquabot_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from app.responses import generate_request_id
from app.routers import (
    actions,
    alerts,
    billing,
    chat,
    compatibility,
    equipment,
    health,
    livestock,
    maintenance,
    notifications,
    parameters,
    photo_diagnosis,
    recommendations,
    species,
    tanks,
    trends,
    usage,
    webhooks,
)
from app.auth import routes as auth_routes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Logs startup configuration and shutdown. Supabase, Anthropic and Stripe
    clients are created lazily on first use.
    """
    logger.info(f"Starting AquaBotAI API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    yield

    logger.info("Shutting down AquaBotAI API")


# Create FastAPI application
app = FastAPI(
    title="AquaBotAI API",
    description="""
## AI-Powered Aquarium Management API

AquaBotAI keeps track of your tanks and helps you look after them.

### Features

- **Tanks & Livestock** - Tanks, the fish, inverts and plants living in them
- **Water Parameters** - Readings with per-tank thresholds and trend analysis
- **Maintenance** - Recurring tasks with completion history
- **Equipment** - Lifespan tracking for filters, heaters and lights
- **AI Assistant** - Tank-aware chat that can log readings and schedule tasks
- **Proactive Alerts** - Daily AI review of worsening parameter trends
- **Subscriptions** - Free, Starter, Plus and Pro tiers billed through Stripe

Every response uses the envelope `{success, data | error, meta}`.
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Sign-in and the current user's profile"},
        {"name": "Tanks", "description": "Create and manage aquariums"},
        {"name": "Livestock", "description": "Fish, inverts and plants in a tank"},
        {"name": "Parameters", "description": "Water readings and thresholds"},
        {"name": "Maintenance", "description": "Recurring maintenance tasks"},
        {"name": "Equipment", "description": "Equipment and lifespan tracking"},
        {"name": "Species", "description": "Species catalog"},
        {"name": "AI", "description": "Chat, actions, trends, compatibility, alerts, photo diagnosis and maintenance recommendations"},
        {"name": "Usage", "description": "Daily AI usage against tier limits"},
        {"name": "Notifications", "description": "Email and push notification preferences"},
        {"name": "Billing", "description": "Stripe checkout, portal and subscription status"},
        {"name": "Webhooks", "description": "Stripe event delivery"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Assign a request id and log one line per request."""
    request_id = generate_request_id()
    request.state.request_id = request_id
    started = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as exc:
        # Errors past the route handlers still get the envelope and the log line
        response = await unhandled_exception_handler(request, exc)

    duration_ms = round((time.perf_counter() - started) * 1000, 1)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        f"request_id={request_id} method={request.method} path={request.url.path} "
        f"status_code={response.status_code} duration_ms={duration_ms}"
    )
    return response


# =============================================================================
# Exception Handlers
# =============================================================================

app.add_exception_handler(AquaBotException, aquabot_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)


# =============================================================================
# Routers
# =============================================================================

# Authentication endpoints (router carries its own /auth prefix)
app.include_router(auth_routes.router, prefix=API_PREFIX)

# Health check endpoints
app.include_router(health.router, prefix=API_PREFIX, tags=["Health"])

# Tank-scoped resources
app.include_router(tanks.router, prefix=f"{API_PREFIX}/tanks", tags=["Tanks"])
app.include_router(livestock.router, prefix=f"{API_PREFIX}/tanks", tags=["Livestock"])
app.include_router(parameters.router, prefix=f"{API_PREFIX}/tanks", tags=["Parameters"])
app.include_router(maintenance.router, prefix=f"{API_PREFIX}/tanks", tags=["Maintenance"])
app.include_router(equipment.router, prefix=f"{API_PREFIX}/tanks", tags=["Equipment"])
app.include_router(equipment.defaults_router, prefix=f"{API_PREFIX}/equipment", tags=["Equipment"])

# Species catalog
app.include_router(species.router, prefix=f"{API_PREFIX}/species", tags=["Species"])

# AI endpoints
app.include_router(chat.router, prefix=f"{API_PREFIX}/ai", tags=["AI"])
app.include_router(actions.router, prefix=f"{API_PREFIX}/ai", tags=["AI"])
app.include_router(trends.router, prefix=f"{API_PREFIX}/ai", tags=["AI"])
app.include_router(compatibility.router, prefix=f"{API_PREFIX}/ai", tags=["AI"])
app.include_router(alerts.router, prefix=f"{API_PREFIX}/ai", tags=["AI"])
app.include_router(photo_diagnosis.router, prefix=f"{API_PREFIX}/ai", tags=["AI"])
app.include_router(recommendations.router, prefix=f"{API_PREFIX}/ai", tags=["AI"])
app.include_router(usage.router, prefix=f"{API_PREFIX}/usage", tags=["Usage"])
app.include_router(notifications.router, prefix=f"{API_PREFIX}/notifications", tags=["Notifications"])

# Billing
app.include_router(billing.router, prefix=f"{API_PREFIX}/billing", tags=["Billing"])
app.include_router(webhooks.router, prefix=f"{API_PREFIX}/webhooks", tags=["Webhooks"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "AquaBotAI API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": f"{API_PREFIX}/health",
    }
