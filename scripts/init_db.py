"""
Database initialization script

Run once (or after schema changes) to create indexes:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.logging import setup_logging, get_logger
from app.db.mongo import connect_to_mongo, close_mongo_connection, get_database
from app.db.indexes import create_indexes

setup_logging()
logger = get_logger(__name__)


async def main():
    await connect_to_mongo()
    try:
        db = await get_database()
        await create_indexes(db)

        collections = await db.list_collection_names()
        logger.info(f"📦 Collections: {collections if collections else '(none yet)'}")
    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    asyncio.run(main())
