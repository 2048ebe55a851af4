"""
Activity Stream API - FastAPI application entry point.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models  # noqa: F401  registers tables
from .component import create_component
from .config import get_settings
from .database import engine, Base
from .errors import ActivityError
from .limiter import limiter
from .middleware import SecurityHeadersMiddleware, RequestLoggingMiddleware
from .responses import api_exception_handler
from .routes import activity_router

settings = get_settings()

# Create tables (in production, use migrations instead)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Activity Stream API",
    description="Activity feed, threaded comments and @mentions",
    version="1.0.0",
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
)

# One component per process: hooks, actions and the sitewide feed cache
app.state.component = create_component(settings)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(StarletteHTTPException, api_exception_handler)
app.add_exception_handler(ActivityError, api_exception_handler)

# Security headers middleware
app.add_middleware(SecurityHeadersMiddleware)

# Request logging middleware (only in debug mode)
if settings.debug:
    app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Origin"],
    max_age=3600,
)

# Routes
app.include_router(activity_router)


@app.get("/api/health")
def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "version": "1.0.0",
    }


@app.get("/")
def root():
    """Root endpoint points at the API docs."""
    return {
        "message": "Activity Stream API",
        "docs": "/api/docs" if settings.debug else "Disabled in production",
    }


def run():
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")


if __name__ == "__main__":
    run()
