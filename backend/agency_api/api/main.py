from fastapi import FastAPI, Request, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
import logging

from .. import __version__
from ..config import get_settings
from ..database.connection import DatabaseManager
from .routes import auth, clients, contact, integrations, projects, quotes, tenants, time_tracking

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Fails fast when required settings are missing
settings = get_settings()

# Initialize FastAPI app with metadata
app = FastAPI(
    title="Agency API",
    description="Multi-tenant backend for a web agency: clients, projects, quotes, time tracking, contact forms and invoicing integrations.",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Authentication",
            "description": "Login, registration, token refresh and logout"
        },
        {
            "name": "Tenants",
            "description": "Tenant administration"
        },
        {
            "name": "Clients",
            "description": "Client management"
        },
        {
            "name": "Projects",
            "description": "Projects and their tasks"
        },
        {
            "name": "Quotes",
            "description": "Quote submission, review and conversion into projects"
        },
        {
            "name": "Time Tracking",
            "description": "Time entries and project hour reports"
        },
        {
            "name": "Contact",
            "description": "Public contact form and its triage"
        },
        {
            "name": "Integrations",
            "description": "Invoicing platform and workflow automation"
        }
    ]
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize database and perform startup tasks."""
    logger.info("Starting up Agency API...")

    try:
        DatabaseManager.init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Perform cleanup tasks on shutdown."""
    logger.info("Shutting down Agency API...")


# Health check endpoint
@app.get("/", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns basic API status and version information.
    """
    return {
        "message": "Agency API is healthy",
        "version": __version__,
        "status": "operational"
    }


@app.get("/health", tags=["Health"])
def detailed_health_check():
    """
    Detailed health check endpoint.

    Probes the database and reports 503 when it cannot be reached.
    """
    if not DatabaseManager.ping():
        logger.error("Health check failed: database unreachable")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy - database connection failed"
        )

    return {
        "status": "healthy",
        "version": __version__,
        "database": "connected",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


# Include routers
app.include_router(auth.router, prefix="/api/v1")
app.include_router(tenants.router, prefix="/api/v1")
app.include_router(clients.router, prefix="/api/v1")
app.include_router(projects.router, prefix="/api/v1")
app.include_router(quotes.router, prefix="/api/v1")
app.include_router(time_tracking.router, prefix="/api/v1")
app.include_router(contact.router, prefix="/api/v1")
app.include_router(integrations.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "agency_api.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
