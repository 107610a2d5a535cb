"""
FastAPI main application for Tender Writer.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tender_api.core.config import settings
from tender_api.core.database import init_db
from tender_api.core.errors import register_exception_handlers
from tender_api.routes import exports, organizations, projects, work_packages
from tender_engine.config.logging_config import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized successfully")
    yield
    logger.info("Shutting down application...")


app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(
    organizations.router, prefix=f"{settings.API_PREFIX}/organizations", tags=["organizations"]
)
app.include_router(projects.router, prefix=f"{settings.API_PREFIX}/projects", tags=["projects"])
app.include_router(
    work_packages.router, prefix=f"{settings.API_PREFIX}/work-packages", tags=["work-packages"]
)
app.include_router(exports.router, prefix=f"{settings.API_PREFIX}/exports", tags=["exports"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.VERSION}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("tender_api.main:app", host="0.0.0.0", port=8000, reload=True)
