"""
SnipShare Backend: Schema Bootstrap Command
=============================================

What:  `snipshare-init-db` console script. Creates the users and snippets
       tables if they do not exist, then exits.
When:  Once per deployment, before starting the server with
       DB_CREATE_SCHEMA=false (or instead of running Alembic).
"""

import asyncio
import logging

from snipshare.config import settings
from snipshare.database import Database
from snipshare.logging_config import setup_logging

logger = logging.getLogger(__name__)


async def init_db() -> None:
    database = Database.from_settings(settings)
    try:
        await database.create_schema()
    finally:
        await database.dispose()


def main() -> None:
    setup_logging(settings.log_level)
    logger.info("Initializing database schema...")
    asyncio.run(init_db())
    logger.info("Database schema ready.")


if __name__ == "__main__":
    main()
