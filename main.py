"""
Event Lifecycle Service - FastAPI Backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError
import uvicorn

from app.core.config import settings
from app.core.db import engine, Base
from app.api import routes_admin, routes_events, routes_public
from app.services.exceptions import ConflictError, EventValidationError, NotFoundError
from app.utils.responses import error_response

# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    # Create database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created")
    yield
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="Event Lifecycle Service",
    description="Scheduled events with categories, localized text, registration and meetings",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return error_response(message=str(exc), error_code="not_found", status_code=404)

@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return error_response(message=exc.message, error_code="conflict", status_code=409)

@app.exception_handler(EventValidationError)
async def validation_handler(request: Request, exc: EventValidationError):
    return error_response(
        message="Event validation failed",
        error_code="validation_failed",
        details=[
            {"entity": v.entity, "field": v.field, "message": v.message}
            for v in exc.violations
        ],
        status_code=422
    )

@app.exception_handler(IntegrityError)
async def integrity_handler(request: Request, exc: IntegrityError):
    # Duplicate registration or a meeting started twice
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return error_response(
        message="Request conflicts with existing data",
        error_code="duplicate",
        status_code=409
    )

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_events.router, prefix="/events", tags=["events"])
app.include_router(routes_admin.router, prefix="/admin", tags=["admin"])

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
