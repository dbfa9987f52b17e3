"""
Database connection management
"""
import logging

from motor.motor_asyncio import AsyncIOMotorClient
from .config import settings

logger = logging.getLogger(__name__)

# MongoDB connection - singleton, connects lazily on first operation
client = AsyncIOMotorClient(settings.MONGO_URL)
db = client[settings.DB_NAME]


async def close_db_connection():
    """Close database connection"""
    client.close()


async def check_db_connection() -> bool:
    """Check if database is accessible"""
    try:
        await client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning(f"MongoDB ping failed: {e}")
        return False
