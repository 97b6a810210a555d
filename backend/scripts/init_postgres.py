"""
Check the SafeCircle PostgreSQL database is reachable and initialized.
Run before the first start: python scripts/init_postgres.py

Create the role and database first if they do not exist:

  sudo -u postgres psql
  CREATE USER safecircle WITH PASSWORD 'safecircle';
  CREATE DATABASE safecircle_db OWNER safecircle;
  \q
"""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from safecircle.config import settings
from safecircle.core.database import build_engine, init_db

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("init_postgres")


def main():
    url = settings.get_database_url()
    if not url.startswith("postgresql"):
        logger.info("Database URL is not PostgreSQL; nothing to check.")
        return

    engine = build_engine(url)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Cannot connect to PostgreSQL at {settings.POSTGRES_HOST}:{settings.POSTGRES_PORT}: {e}")
        logger.error(
            f'Create it with: psql -U postgres -c "CREATE DATABASE {settings.POSTGRES_DB} OWNER {settings.POSTGRES_USER};"'
        )
        sys.exit(1)
    finally:
        engine.dispose()

    logger.info("PostgreSQL connection OK.")
    init_db()
    logger.info(f"Database check passed (DB_INIT_MODE={settings.DB_INIT_MODE}).")


if __name__ == "__main__":
    main()
