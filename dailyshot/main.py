from typing import Optional

from dailyshot import __version__
from dailyshot.config import settings
from dailyshot.database import Database, get_database
from dailyshot.logging_config import configure_logging
from dailyshot.utils.logger import get_logger

logger = get_logger(__name__)


def create_app() -> Database:
    """Configure logging and build the process-wide database handle."""
    configure_logging()
    db = get_database()
    mode = "DEBUG" if settings.DEBUG else "PRODUCTION"
    logger.info(f"DailyShot core {__version__} started in {mode} mode with {settings.STORAGE_BACKEND} storage")
    return db


async def health_check(db: Optional[Database] = None) -> dict:
    """Storage health for load balancers and monitoring."""
    db = db or get_database()
    healthy = await db.storage.ping()
    return {"status": "healthy" if healthy else "unhealthy", "service": "dailyshot"}
