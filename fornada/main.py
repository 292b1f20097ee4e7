"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fornada.api import auth, establishments, notifications, plans, reservations
from fornada.config import get_settings
from fornada.services.notification_service import get_notification_service

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    # Warns once when VAPID credentials are missing
    get_notification_service()
    yield


app = FastAPI(
    title="Fornada API",
    description="Bakery directory with fornada push notifications and reservations",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(auth.router)
app.include_router(establishments.router)
app.include_router(notifications.router)
app.include_router(reservations.router)
app.include_router(plans.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
