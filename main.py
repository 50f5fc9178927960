"""
Review & Onboarding Backend - Main Application
HR onboarding approvals, review cycles, reviewer assignments, review forms
and appraisals behind one FastAPI app.
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging
import uvicorn

from config import Settings, get_settings
from database import Database
from routes import (
    appraisals_router,
    assignments_router,
    auth_router,
    notifications_router,
    onboarding_router,
    review_cycles_router,
    review_forms_router,
    users_router,
)
from utils.errors import UnexpectedError, WorkflowError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Review & Onboarding Backend Starting...")
    database: Database = app.state.database

    try:
        logger.info("📊 Initializing database...")
        database.init_db()

        logger.info("🔍 Testing database connection...")
        if database.test_connection():
            logger.info("✅ Database connection successful")
        else:
            logger.error("❌ Database connection failed")

        logger.info("✅ Backend startup completed successfully")

    except Exception as e:
        logger.error(f"❌ Startup error: {str(e)}")
        raise

    yield

    # Shutdown
    logger.info("🛑 Review & Onboarding Backend Shutting Down...")
    database.dispose()


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the application.

    Settings and the database are attached to ``app.state`` so that request
    dependencies resolve them per app instead of from module globals.
    """
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.LOG_LEVEL.upper())

    app = FastAPI(
        title="Review & Onboarding Backend API",
        description="Onboarding approvals, performance review cycles and appraisals",
        version=APP_VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.database = database or Database(
        settings.DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(WorkflowError)
    async def workflow_exception_handler(request: Request, exc: WorkflowError):
        if exc.status_code >= 500:
            logger.error(f"❌ {exc.code}: {exc.message} ({request.method} {request.url.path})")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(SQLAlchemyError)
    async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"❌ Storage failure on {request.method} {request.url.path}: {str(exc)}")
        error = UnexpectedError(f"Database error: {str(exc)}", code="DATABASE_ERROR")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder({
                "success": False,
                "error": "Invalid request",
                "code": "VALIDATION_ERROR",
                "details": exc.errors(),
            })
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"❌ Global exception: {str(exc)}")
        logger.error(f"📍 Request: {request.method} {request.url}")

        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": f"Internal server error: {str(exc)}",
                "code": "INTERNAL_ERROR",
                "error_type": type(exc).__name__,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        )

    # Health check endpoint
    @app.get("/health")
    def health_check():
        db_status = app.state.database.test_connection()
        return JSONResponse(
            status_code=200 if db_status else 503,
            content={
                "status": "healthy" if db_status else "unhealthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "database": "connected" if db_status else "disconnected",
                "version": APP_VERSION
            }
        )

    # Root endpoint
    @app.get("/")
    def root():
        return {
            "message": "Review & Onboarding Backend API",
            "version": APP_VERSION,
            "status": "running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "docs": "/docs",
            "health": "/health"
        }

    prefix = settings.API_PREFIX.rstrip("/")
    app.include_router(auth_router, prefix=f"{prefix}/auth", tags=["Authentication"])
    app.include_router(users_router, prefix=f"{prefix}/users", tags=["Users"])
    app.include_router(onboarding_router, prefix=f"{prefix}/onboarding", tags=["Onboarding"])
    app.include_router(review_cycles_router, prefix=f"{prefix}/review-cycles", tags=["Review Cycles"])
    app.include_router(assignments_router, prefix=f"{prefix}/assignments", tags=["Assignments"])
    app.include_router(review_forms_router, prefix=f"{prefix}/review-forms", tags=["Review Forms"])
    app.include_router(appraisals_router, prefix=f"{prefix}/appraisals", tags=["Appraisals"])
    app.include_router(notifications_router, prefix=f"{prefix}/notifications", tags=["Notifications"])

    logger.info("🎯 Review & Onboarding Backend API is ready!")
    return app


if __name__ == "__main__":
    uvicorn.run(
        "main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8080,
        reload=False,
        log_level="info"
    )
