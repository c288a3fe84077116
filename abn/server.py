"""
abn-server entrypoint.

Loads .abn_settings/Settings.toml (created on first run), sets up logging,
connects the database, then serves abn.main:app with uvicorn.
Exit code 1 if settings or database can't be used.
"""

import logging
import sys

import uvicorn
from sqlalchemy.exc import SQLAlchemyError

from abn.core import database
from abn.core.config import SettingsError, load_settings
from abn.core.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    try:
        settings = load_settings()
    except SettingsError as e:
        print(f"abn-server: {e}", file=sys.stderr)
        return 1

    setup_logging(settings.LOG_LEVEL)

    try:
        database.configure_database(settings.DATABASE_URL)
        database.init_db()
    except SQLAlchemyError as e:
        logger.error(f"can't open database {settings.DATABASE_URL}: {e}")
        return 1

    logger.info(f"serving on {settings.HOST}:{settings.PORT}")
    uvicorn.run("abn.main:app", host=settings.HOST, port=settings.PORT, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
