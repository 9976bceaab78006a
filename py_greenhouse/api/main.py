"""FastAPI main application."""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import structlog

from .. import __version__
from ..config import settings
from ..db.connection import db
from . import expansion, jobs


def configure_logging():
    """Configure structlog on top of stdlib logging; debug mode forces console output."""
    level = "DEBUG" if settings.debug else settings.log_level.upper()
    logging.basicConfig(format="%(message)s", level=level)

    if settings.debug or settings.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Greenhouse Planner API",
    description="Expansion-order optimizer for the greenhouse grid",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(expansion.router)
app.include_router(jobs.router)


# Event handlers
@app.on_event("startup")
async def startup_event():
    """Initialize the job database on startup."""
    logger.info("Starting Greenhouse Planner API")
    if not db.is_initialized:
        db.initialize()
    logger.info("API startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down Greenhouse Planner API")
    db.dispose()


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Greenhouse Planner API",
        "version": __version__,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    try:
        db.ping()
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        raise HTTPException(status_code=503, detail="Service unhealthy")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "py_greenhouse.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
