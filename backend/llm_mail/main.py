"""
FastAPI LLM-Mail Backend
Main application entry point
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from llm_mail.config import settings
from llm_mail.routers import (
    campaign,
    generate_image,
    look_feel,
    recommendations,
    settings as settings_router,
    templates,
)
from llm_mail.services.database import DatabaseService

logging.basicConfig(level=settings.log_level.upper(), format="%(message)s")

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting up LLM-Mail API...")

    database = DatabaseService(settings)
    if await database.initialize():
        logger.info("Database initialized successfully")
        app.state.database = database
    else:
        logger.warning("Database initialization failed - running without persistence")

    logger.info("Startup complete")

    yield

    logger.info("Shutting down...")
    await database.close()
    app.state.database = None
    logger.info("Shutdown complete")


app = FastAPI(
    title="LLM-Mail API",
    description="Campaign email generation from natural-language briefs with streamed progress",
    version="1.0.0",
    lifespan=lifespan
)
app.state.database = None

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Generated images written to local disk are served from here
images_dir = Path(settings.generated_images_dir)
images_dir.mkdir(parents=True, exist_ok=True)
app.mount(settings.generated_images_url_prefix, StaticFiles(directory=images_dir), name="generated-images")


# Health Check
@app.get("/")
async def root():
    return {
        "status": "ok",
        "message": "LLM-Mail API is running",
        "version": "1.0.0",
        "llm_provider": settings.llm_provider,
    }


@app.get("/health")
async def health_check():
    database = app.state.database
    return {
        "status": "healthy",
        "llm_provider": settings.llm_provider,
        "s3_bucket": settings.aws_s3_bucket,
        "s3_configured": settings.is_s3_configured,
        "database": database is not None and database.is_healthy,
    }


# Include API routers
app.include_router(campaign.router, prefix="/api", tags=["Campaign"])
app.include_router(generate_image.router, prefix="/api", tags=["Generate Image"])
app.include_router(recommendations.router, prefix="/api", tags=["Recommendations"])
app.include_router(templates.router, prefix="/api", tags=["Templates"])
app.include_router(look_feel.router, prefix="/api", tags=["Look & Feel"])
app.include_router(settings_router.router, prefix="/api", tags=["Settings"])


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.exception("Unhandled error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": str(exc)
        }
    )
