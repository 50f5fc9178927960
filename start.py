#!/usr/bin/env python3
"""
Review & Onboarding Backend Startup Script
Checks configuration and storage before handing over to uvicorn
"""

import os
import sys
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

REQUIRED_VARS = ("DATABASE_URL", "SECRET_KEY")


def check_environment():
    """Check if all required environment variables are set"""
    missing_vars = [var for var in REQUIRED_VARS if not os.getenv(var)]

    if missing_vars:
        logger.error(f"❌ Missing environment variables: {missing_vars}")
        return False

    logger.info("✅ All required environment variables are set")
    return True


def check_database_connection():
    """Test database connectivity before starting the server"""
    from config import get_settings
    from database import Database

    settings = get_settings()
    logger.info("🔍 Testing database connection...")

    database = Database(settings.DATABASE_URL, pool_size=1, max_overflow=0)
    try:
        ok = database.test_connection()
    finally:
        database.dispose()

    if not ok:
        logger.warning("⚠️ Continuing anyway - will try to connect during runtime")
    return ok


def start_server():
    """Start the FastAPI server"""
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"🚀 Starting Review & Onboarding Backend on {host}:{port}")

    uvicorn.run(
        "main:create_app",
        factory=True,
        host=host,
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower()
    )


def main():
    """Main startup function"""
    logger.info("🌱 Review & Onboarding Backend - Starting Up...")

    if not check_environment():
        logger.error("❌ Environment check failed")
        sys.exit(1)

    check_database_connection()

    start_server()


if __name__ == "__main__":
    main()
